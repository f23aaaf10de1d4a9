"""Three-step contract wizard: Details -> Obligations -> Review.

The draft lives in memory; it is persisted when Details is submitted
(create, then update) and again on Review with the full obligation set.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import asdict, dataclass, field, fields
from datetime import date
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from app.schemas.api import (
    ContractCreate,
    ContractOut,
    ContractUpdate,
    DocumentOut,
    ObligationIn,
    PrefillOut,
)
from app.schemas.domain import (
    ContractStatus,
    ObligationStatus,
    ObligationType,
    date_order_warnings,
    normalize_contract_type,
    parse_iso_date,
)
from client.context import ClientContext
from client.errors import ClientError, ServerError, ValidationError, from_validation

logger = logging.getLogger(__name__)

CONTRACTS_CACHE_KEY = "contracts"

DateValue = Union[date, str, None]


class WizardStep(str, enum.Enum):
    DETAILS = "details"
    OBLIGATIONS = "obligations"
    REVIEW = "review"


STEPS = (WizardStep.DETAILS, WizardStep.OBLIGATIONS, WizardStep.REVIEW)


@dataclass
class ObligationDraft:
    title: str = ""
    description: Optional[str] = None
    obligation_type: Union[ObligationType, str] = ObligationType.OTHER
    responsible_party: Optional[str] = None
    due_date: DateValue = None
    recurrence: Optional[str] = None
    status: Union[ObligationStatus, str] = ObligationStatus.PENDING
    reminder_days: list[int] = field(default_factory=list)

    def to_payload(self) -> ObligationIn:
        return ObligationIn.model_validate(asdict(self))

    @classmethod
    def from_api(cls, data: Any) -> "ObligationDraft":
        item = ObligationIn.model_validate(data)
        return cls(**item.model_dump(include=set(ObligationIn.model_fields)))


@dataclass
class ContractDraft:
    contract_id: Optional[str] = None
    document_id: Optional[str] = None

    contract_type: Optional[str] = None
    contract_status: Union[ContractStatus, str] = ContractStatus.DRAFT
    contract_number: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    counterparty_name: Optional[str] = None
    counterparty_address: Optional[str] = None
    counterparty_contact_email: Optional[str] = None
    effective_date: DateValue = None
    expiry_date: DateValue = None
    execution_date: DateValue = None
    renewal_date: DateValue = None
    total_value: Optional[str] = None
    currency: Optional[str] = None

    obligations: list[ObligationDraft] = field(default_factory=list)

    def details(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in DETAIL_FIELDS}


DETAIL_FIELDS = tuple(
    f.name for f in fields(ContractDraft) if f.name not in ("contract_id", "document_id", "obligations")
)


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_date(value: DateValue) -> Optional[date]:
    if isinstance(value, date):
        return value
    return parse_iso_date(value)


class ContractWizard:
    """Client-side state machine over a ContractDraft.

    Forward moves go one step at a time through the submit methods; ``back``
    and ``go_to`` only move backwards, to a visited step, without touching
    the draft.
    """

    def __init__(self, ctx: ClientContext, draft: Optional[ContractDraft] = None):
        self._ctx = ctx
        self.draft = draft or ContractDraft()
        self.step = WizardStep.DETAILS
        self.visited: set[WizardStep] = {WizardStep.DETAILS}
        self.edited: set[str] = set()
        self.field_errors: dict[str, str] = {}
        self.error: Optional[ClientError] = None
        self.busy = False
        self.finished = False

    @classmethod
    async def open(
        cls,
        ctx: ClientContext,
        *,
        contract_id: Optional[str] = None,
        document_id: Optional[str] = None,
        prefill_id: Optional[str] = None,
    ) -> "ContractWizard":
        """Open in edit mode (``contract_id``) or AI-assisted create mode."""
        wizard = cls(ctx)
        if contract_id:
            await wizard.load_contract(contract_id)
            return wizard

        wizard.draft.document_id = document_id
        if prefill_id:
            await wizard.load_prefill(prefill_id)
        if wizard.draft.document_id:
            await wizard.load_document(wizard.draft.document_id)
        return wizard

    @property
    def contract_id(self) -> Optional[str]:
        return self.draft.contract_id

    @property
    def is_edit(self) -> bool:
        return self.draft.contract_id is not None

    @property
    def warnings(self) -> list[str]:
        """Advisory data-quality notes; never block a submit."""
        return date_order_warnings(_as_date(self.draft.effective_date), _as_date(self.draft.expiry_date))

    # ------------------
    # Seeding the draft
    # ------------------
    async def load_contract(self, contract_id: str) -> None:
        body = await self._ctx.request("GET", f"/api/contracts/{contract_id}")
        contract = ContractOut.model_validate(body.get("data") or {})

        values = contract.model_dump(include=set(DETAIL_FIELDS))
        self.draft = ContractDraft(
            contract_id=contract.id,
            obligations=[ObligationDraft.from_api(o) for o in contract.obligations],
            **values,
        )
        self.visited = set(STEPS)
        logger.info("Wizard loaded contract %s with %d obligations", contract.id, len(contract.obligations))

    async def load_prefill(self, prefill_id: str) -> None:
        body = await self._ctx.request("GET", f"/api/contracts/prefill/{prefill_id}")
        prefill = PrefillOut.model_validate(body.get("data") or {})
        self.draft.document_id = self.draft.document_id or prefill.document_id

        suggestions: dict[str, Any] = {
            "title": prefill.title,
            "counterparty_name": prefill.vendor,
            "effective_date": prefill.effective_date,
            "expiry_date": prefill.termination_date,
        }
        if prefill.doc_type:
            suggestions["contract_type"] = normalize_contract_type(prefill.doc_type).value
        self.apply_suggestions(suggestions)

    async def load_document(self, document_id: str) -> None:
        body = await self._ctx.request("GET", f"/api/documents/{document_id}")
        document = DocumentOut.model_validate(body.get("data") or {})
        self.apply_suggestions({"title": document.title, "description": document.description})

    # -------
    # Editing
    # -------
    def update_fields(self, **values: Any) -> None:
        """Record user edits; edited fields are never overwritten by suggestions."""
        for name, value in values.items():
            if name not in DETAIL_FIELDS:
                raise ValueError(f"Unknown contract field: {name}")
            setattr(self.draft, name, value)
            self.edited.add(name)
            self.field_errors.pop(name, None)

    def apply_suggestions(self, values: dict[str, Any]) -> list[str]:
        """Fill empty, unedited fields from extracted data. Returns the fields filled."""
        applied = []
        for name, value in values.items():
            if name not in DETAIL_FIELDS or _is_empty(value) or name in self.edited:
                continue
            if _is_empty(getattr(self.draft, name)):
                setattr(self.draft, name, value)
                applied.append(name)
        return applied

    # -----------
    # Transitions
    # -----------
    def _require(self, step: WizardStep) -> None:
        if self.busy:
            raise RuntimeError("A save is already in progress")
        if self.finished:
            raise RuntimeError("The wizard has already finished")
        if self.step != step:
            raise RuntimeError(f"Cannot submit {step.value} from the {self.step.value} step")

    def _advance(self, step: WizardStep) -> None:
        self.step = step
        self.visited.add(step)
        self.error = None
        self.field_errors = {}

    def _validate_details(self) -> dict[str, str]:
        errors = {}
        if _is_empty(self.draft.counterparty_name):
            errors["counterparty_name"] = "Counterparty name is required"
        if _is_empty(self.draft.contract_type):
            errors["contract_type"] = "Contract type is required"
        return errors

    def _reject(self, errors: dict[str, str]) -> bool:
        self.field_errors = errors
        self.error = ValidationError(field_errors=errors)
        return False

    def _fail(self, err: ClientError) -> bool:
        self.error = err
        self.field_errors = dict(err.field_errors)
        self._ctx.notify(err)
        return False

    async def _save(self, payload: dict[str, Any]) -> dict[str, Any]:
        self.busy = True
        try:
            if self.draft.contract_id is None:
                body = await self._ctx.request("POST", "/api/contracts", json=payload)
            else:
                body = await self._ctx.request("PATCH", f"/api/contracts/{self.draft.contract_id}", json=payload)
        finally:
            self.busy = False
        data = body.get("data") or {}
        if "id" not in data:
            raise ServerError("Contract response did not include an id")
        return data

    async def submit_details(self, form: Optional[dict[str, Any]] = None) -> bool:
        """Validate and persist the details, then move to Obligations.

        Returns False, staying on Details, when validation or the save fails.
        """
        self._require(WizardStep.DETAILS)
        if form:
            self.update_fields(**form)

        errors = self._validate_details()
        if errors:
            return self._reject(errors)

        try:
            if self.draft.contract_id is None:
                model = ContractCreate.model_validate({**self.draft.details(), "document_id": self.draft.document_id})
                payload = model.model_dump(mode="json", by_alias=True, exclude_none=True)
            else:
                model = ContractUpdate.model_validate(self.draft.details())
                payload = model.model_dump(mode="json", by_alias=True, exclude_unset=True)
        except PydanticValidationError as exc:
            err = from_validation(exc)
            self.error = err
            self.field_errors = dict(err.field_errors)
            return False

        try:
            data = await self._save(payload)
        except ClientError as err:
            return self._fail(err)

        created = self.draft.contract_id is None
        self.draft.contract_id = data["id"]
        logger.info("%s contract %s from wizard details", "Created" if created else "Updated", data["id"])
        self._advance(WizardStep.OBLIGATIONS)
        return True

    def submit_obligations(self, obligations: Iterable[Union[ObligationDraft, dict[str, Any]]]) -> bool:
        """Attach obligations to the draft and move to Review. No request is sent."""
        self._require(WizardStep.OBLIGATIONS)

        drafts: list[ObligationDraft] = []
        errors: dict[str, str] = {}
        for index, item in enumerate(obligations):
            try:
                if isinstance(item, ObligationDraft):
                    item.to_payload()
                else:
                    item = ObligationDraft.from_api(item)
            except PydanticValidationError as exc:
                for name, message in from_validation(exc).field_errors.items():
                    errors.setdefault(f"obligations.{index}.{name}", message)
                continue
            drafts.append(item)
        if errors:
            return self._reject(errors)

        self.draft.obligations = drafts
        self._advance(WizardStep.REVIEW)
        return True

    async def submit_review(self) -> bool:
        """Persist fields and the full obligation set, then open the contract."""
        self._require(WizardStep.REVIEW)
        if self.draft.contract_id is None:
            raise RuntimeError("Details must be saved before review")

        errors = self._validate_details()
        if errors:
            return self._reject(errors)

        try:
            model = ContractUpdate.model_validate(
                {
                    **self.draft.details(),
                    "obligations": [o.to_payload() for o in self.draft.obligations],
                }
            )
        except PydanticValidationError as exc:
            err = from_validation(exc)
            self.error = err
            self.field_errors = dict(err.field_errors)
            return False

        try:
            await self._save(model.model_dump(mode="json", by_alias=True, exclude_unset=True))
        except ClientError as err:
            return self._fail(err)

        self.finished = True
        self.error = None
        self.field_errors = {}
        self._ctx.cache.invalidate(CONTRACTS_CACHE_KEY)
        logger.info("Wizard finished contract %s", self.draft.contract_id)
        self._ctx.navigate(f"/contracts/{self.draft.contract_id}")
        return True

    def back(self) -> WizardStep:
        index = STEPS.index(self.step)
        if index > 0:
            self.step = STEPS[index - 1]
        return self.step

    def go_to(self, step: WizardStep) -> WizardStep:
        step = WizardStep(step)
        if step not in self.visited:
            raise ValueError(f"Step {step.value} has not been visited yet")
        if STEPS.index(step) > STEPS.index(self.step):
            raise ValueError(f"Cannot skip ahead to {step.value}; submit {self.step.value} first")
        self.step = step
        return self.step

    def cancel(self) -> None:
        """Drop the in-memory draft. Anything saved at Details stays saved."""
        self.draft = ContractDraft()
        self.step = WizardStep.DETAILS
        self.visited = {WizardStep.DETAILS}
        self.edited = set()
        self.field_errors = {}
        self.error = None
        self._ctx.navigate("/contracts")
