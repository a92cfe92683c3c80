#!/usr/bin/env python3
"""
Counter Reconciliation Script

Recomputes internship applications_count from the applications
collection. By default only internships queued after a failed counter
write are recounted.

Usage:
    python scripts/reconcile_counters.py            # queued internships
    python scripts/reconcile_counters.py --all      # every internship
    python scripts/reconcile_counters.py <id> <id>  # specific internships

Schedule it (cron, k8s CronJob) to keep counters eventually consistent.
"""
import argparse
import logging
import sys
sys.path.insert(0, '.')

from internmatch.db.mongodb import test_mongo_connection
from internmatch.services.counters import InternshipCounters
from internmatch.services.documents import to_object_id


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Recompute internship applications_count")
    parser.add_argument("internship_ids", nargs="*", help="Internship ids to recount")
    parser.add_argument("--all", action="store_true", help="Recount every internship")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if not test_mongo_connection():
        print("MongoDB is not reachable")
        return 1

    ids = [to_object_id(i, "Internship") for i in args.internship_ids] or None
    result = InternshipCounters().reconcile(ids, all_internships=args.all)

    print("=" * 50)
    print(f"Reconciled {len(result)} internship(s)")
    for internship_id, count in result.items():
        print(f"    {internship_id}: {count}")
    print("=" * 50)
    return 0


if __name__ == "__main__":
    sys.exit(main())
