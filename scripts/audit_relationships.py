"""
Relationship audit.
Reports inconsistent relationship sets and optionally repairs them.

Usage:
    python scripts/audit_relationships.py            # report only
    python scripts/audit_relationships.py --repair   # drop one-sided and dangling entries
"""
import argparse
import asyncio
import sys
from collections import Counter

from profinder.core.database import AsyncSessionLocal, engine
from profinder.core.pubsub import ChangeBroker
from profinder.repositories.relationship_store import RelationshipStore
from profinder.services.audit_service import AuditService


async def run_audit(repair: bool) -> int:
    """Run the audit and print a summary. Returns the number of issues."""
    # Local broker: no live listeners in this process
    store = RelationshipStore(AsyncSessionLocal, ChangeBroker())

    try:
        report = await AuditService(store).audit(repair=repair)
    finally:
        await engine.dispose()

    print(f"📊 Scanned {report.users_scanned} user(s)")

    if not report.issues:
        print("✅ Relationship sets are consistent")
        return 0

    for kind, count in sorted(Counter(issue.kind for issue in report.issues).items()):
        print(f"   {kind}: {count}")

    for issue in report.issues:
        marker = "🔧" if issue.repaired else "⚠️"
        print(f"{marker} {issue.kind}: {issue.user_id}.{issue.field} -> {issue.other_user_id}")

    if repair:
        print(f"\n🔧 Repaired {report.repaired} entr{'y' if report.repaired == 1 else 'ies'}")

    return len(report.issues)


def main() -> int:
    parser = argparse.ArgumentParser(description="Audit user relationship sets")
    parser.add_argument("--repair", action="store_true", help="repair fixable issues")
    args = parser.parse_args()

    issues = asyncio.run(run_audit(args.repair))
    return 1 if issues and not args.repair else 0


if __name__ == "__main__":
    sys.exit(main())
