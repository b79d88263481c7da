#!/usr/bin/env python3
"""
Download AI call audit rows (ai_logs) from Supabase as readable markdown.

Usage:
    python scripts/download_ai_logs.py                         # List recent calls
    python scripts/download_ai_logs.py --latest 20             # Download the 20 most recent calls
    python scripts/download_ai_logs.py --endpoint scan-receipt # Filter by endpoint
    python scripts/download_ai_logs.py --household HOUSEHOLD   # Filter by household
    python scripts/download_ai_logs.py --errors                # Only failed calls
"""

import argparse
import json
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from cuisineduo.db.client import get_service_client  # noqa: E402

OUTPUT_DIR = Path("ai_logs_downloaded")


def fetch_logs(endpoint: str | None, household_id: str | None, errors_only: bool, limit: int) -> list[dict]:
    query = get_service_client().table("ai_logs").select("*")
    if endpoint:
        query = query.eq("endpoint", endpoint)
    if household_id:
        query = query.eq("household_id", household_id)
    if errors_only:
        query = query.not_.is_("error", "null")
    return query.order("created_at", desc=True).limit(limit).execute().data or []


def list_logs(logs: list[dict]) -> None:
    print(f"\nRecent AI calls ({len(logs)} shown):\n")
    print(f"{'Time':<20} {'Endpoint':<26} {'Household':<12} {'ms':>7}  Status")
    print("-" * 80)
    for log in logs:
        started = (log.get("created_at") or "")[:19].replace("T", " ")
        household = (log.get("household_id") or "N/A")[:8]
        status = "ERROR" if log.get("error") else "ok"
        print(f"{started:<20} {log['endpoint']:<26} {household:<12} {log.get('duration_ms') or 0:>7}  {status}")
    print("\nTo download: python scripts/download_ai_logs.py --latest N")


def _json_block(value) -> str:
    if value is None:
        return "(none)\n"
    return f"```json\n{json.dumps(value, indent=2, ensure_ascii=False, default=str)}\n```\n"


def write_log(log: dict, index: int, output_dir: Path) -> Path:
    filepath = output_dir / f"{index:03d}_{log['endpoint']}.md"
    outcome = f"**ERROR:** {log['error']}\n" if log.get("error") else _json_block(log.get("output"))

    content = f"""# AI Call: {log['endpoint']}

**Time:** {log.get('created_at')}
**Duration:** {log.get('duration_ms')} ms
**Household:** {log.get('household_id') or 'N/A'}
**Profile:** {log.get('profile_id') or 'N/A'}

---

## Input

{_json_block(log.get('input'))}
---

## Output

{outcome}"""
    filepath.write_text(content, encoding="utf-8")
    return filepath


def main():
    parser = argparse.ArgumentParser(description="Download AI call audit logs from Supabase")
    parser.add_argument("--latest", type=int, metavar="N", help="Download the N most recent calls")
    parser.add_argument("--endpoint", help="Filter by endpoint (e.g. scan-receipt)")
    parser.add_argument("--household", help="Filter by household ID")
    parser.add_argument("--errors", action="store_true", help="Only calls that failed")
    args = parser.parse_args()

    logs = fetch_logs(args.endpoint, args.household, args.errors, limit=args.latest or 30)
    if not args.latest:
        list_logs(logs)
        return

    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    for index, log in enumerate(reversed(logs), start=1):
        print(f"  {write_log(log, index, OUTPUT_DIR).name}")
    print(f"\nDownloaded {len(logs)} calls to: {OUTPUT_DIR}")


if __name__ == "__main__":
    main()
