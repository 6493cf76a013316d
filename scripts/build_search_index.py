"""
Rebuild the ChatNPT vector index.

    python scripts/build_search_index.py             # every organization
    python scripts/build_search_index.py --org acme  # one organization by slug

Only new or changed chunks are embedded, so re-running is cheap.
"""
import argparse
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app import create_app  # noqa: E402
from app.models import Organization  # noqa: E402
from chatnpt.index import rebuild_index  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Rebuild the ChatNPT search index")
    parser.add_argument("--org", help="organization slug (default: all organizations)")
    args = parser.parse_args()

    app = create_app(os.getenv("FLASK_ENV", "production"))
    with app.app_context():
        query = Organization.query.order_by(Organization.id)
        if args.org:
            query = query.filter_by(slug=args.org)
        orgs = query.all()
        if not orgs:
            print(f"No organization found{' for ' + args.org if args.org else ''}")
            return 1

        failed = 0
        for org in orgs:
            stats = rebuild_index(org.id)
            print(f"{org.slug}: indexed {stats['indexed']}  skipped {stats['skipped']}  deleted {stats['deleted']}")
            for err in stats["errors"]:
                failed += 1
                print(f"  error: {err}")

    print("Done." if not failed else f"Done with {failed} failed batch(es).")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
