#!/usr/bin/env python3
"""
End-to-end demo for the Contract Intake Service.

Uploads a document, waits for analysis, then either creates a new contract
through the wizard or attaches the document to the suggested contract.

Prerequisites:
    1. API, worker, Postgres, MinIO and Temporal running
    2. OPENAI_API_KEY set in .env (optional; rule-based analysis otherwise)

Usage:
    python scripts/e2e_demo.py --file path/to/contract.pdf

    # Attach to the suggested contract instead of creating one:
    python scripts/e2e_demo.py --file contract.pdf --attach

    # Output the analysis as raw JSON:
    python scripts/e2e_demo.py --file contract.pdf --json
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from client import (
    AnalysisPoller,
    ClientContext,
    ClientError,
    ClientSettings,
    ContractWizard,
    DispositionResolver,
    SelectedFile,
    UploadDialog,
    UploadMetadata,
)


def print_analysis(ctx: ClientContext, analysis) -> None:
    print("\n" + "=" * 60)
    print("ANALYSIS RESULTS")
    print("=" * 60)

    levels = ctx.confidence.levels(analysis.confidence)
    rows = [
        ("Vendor", analysis.vendor, "vendor"),
        ("Title", analysis.contract_title, "contractTitle"),
        ("Type", analysis.doc_type, "docType"),
        ("Effective Date", analysis.effective_date, "effectiveDate"),
        ("Termination Date", analysis.termination_date, "terminationDate"),
    ]
    for label, value, key in rows:
        level = levels.get(key)
        suffix = f" ({level.value})" if level else ""
        print(f"  {label}: {value or 'N/A'}{suffix}")
    if analysis.suggested_contract_id:
        print(f"  Suggested contract: {analysis.suggested_contract_id}")

    print("=" * 60)


async def run(args) -> int:
    settings = ClientSettings(base_url=args.api) if args.api else ClientSettings()

    async with ClientContext(settings) as ctx:
        # Step 1: Health check
        print("\n[1/4] Checking API readiness...")
        try:
            ready = await ctx.request("GET", "/health/ready")
        except ClientError as e:
            print(f"  Error: {e.message}")
            return 1
        for service, status in ready.get("checks", {}).items():
            print(f"  {service}: {'OK' if status == 'ok' else 'FAIL'}")

        # Step 2: Upload
        print(f"\n[2/4] Uploading {args.file.name}")
        dialog = UploadDialog(ctx)
        result = await dialog.start_upload(
            SelectedFile.from_path(args.file),
            UploadMetadata(title=args.title or args.file.stem, tags=args.tags or ""),
            on_progress=lambda p: print(f"  Uploading: {p}%", end="\r"),
        )
        if not result.ok:
            print(f"\n  Upload failed: {result.error.message if result.error else 'cancelled'}")
            return 1
        document_id = result.document["id"]
        print(f"\n  Document ID: {document_id} (via {result.transport} transport)")

        # Step 3: Analysis
        print(f"\n[3/4] Waiting for analysis (max {settings.poll_max_wait_s:.0f}s)...")
        poller = AnalysisPoller(ctx)
        try:
            analysis = await poller.analyze(document_id)
        except ClientError as e:
            print(f"  Error: {e.message}")
            return 1
        if analysis.error:
            print(f"  Analysis failed: {analysis.error}")
            return 1

        if args.json:
            print(json.dumps(analysis.model_dump(mode="json", by_alias=True), indent=2))
        else:
            print_analysis(ctx, analysis)

        # Step 4: Disposition
        resolver = DispositionResolver(ctx)
        if args.attach:
            candidates = await resolver.candidates(analysis)
            if not candidates:
                print("\n[4/4] No existing contracts to attach to")
                return 1
            target = candidates[0]
            print(f"\n[4/4] Attaching to {target.label}{' (suggested)' if target.suggested else ''}")
            await resolver.attach_to_existing(target.id, document_id, confidence=analysis.confidence)
            print(f"  Attached to contract {target.id}")
            return 0

        print("\n[4/4] Creating contract from analysis...")
        prefill_id = await resolver.create_from_analysis(analysis, document_id)
        wizard = await ContractWizard.open(ctx, prefill_id=prefill_id)
        wizard.update_fields(
            counterparty_name=wizard.draft.counterparty_name or "Unknown counterparty",
            contract_type=wizard.draft.contract_type or "OTHER",
        )
        for warning in wizard.warnings:
            print(f"  Warning: {warning}")

        if not await wizard.submit_details():
            print(f"  Could not save details: {wizard.field_errors or wizard.error}")
            return 1
        wizard.submit_obligations([])
        if not await wizard.submit_review():
            print(f"  Could not finish: {wizard.error}")
            return 1
        print(f"  Contract created: {wizard.contract_id}")
        print(f"  Open {ctx.location}")

    return 0


def main():
    parser = argparse.ArgumentParser(description="E2E demo for the Contract Intake Service")
    parser.add_argument("--file", "-f", type=Path, required=True, help="Path to the contract document")
    parser.add_argument("--title", help="Document title (defaults to the file name)")
    parser.add_argument("--tags", help="Comma-delimited tags")
    parser.add_argument("--api", help="API base URL (defaults to CONTRACT_CLIENT_BASE_URL)")
    parser.add_argument("--attach", action="store_true", help="Attach to the suggested contract")
    parser.add_argument("--json", action="store_true", help="Output the analysis as raw JSON")
    args = parser.parse_args()

    if not args.file.exists():
        print(f"Error: file not found: {args.file}")
        sys.exit(1)

    print("=" * 60)
    print("CONTRACT INTAKE - E2E DEMO")
    print("=" * 60)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
