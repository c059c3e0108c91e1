#!/usr/bin/env python3
"""reindex.py — Rebuild content/{section}/index.json from the stored records.

Recovery path for section indexes that drifted from their records: a
PARTIAL_WRITE response, two admins editing at once, or a hand-edited blob.
Every live content/{section}/{slug}/desc.json is re-projected into an index
entry and the index is rewritten in list order. Records left behind by a
slug rename are reported and skipped.

Usage:
    # Dry-run (default: shows the drift, no S3 writes):
    portfolio-reindex

    # Rewrite every section index:
    portfolio-reindex --write

    # One section, explicit bucket and region:
    portfolio-reindex --section projects --bucket my-site-bucket --region us-west-2 --write

Requires:
    - AWS credentials with s3:ListBucket, s3:GetObject and s3:PutObject on the bucket
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from . import config
from .aws_clients import _get_s3
from .section_index import SectionIndexMaintainer
from .storage import ObjectStore

__all__ = ["main", "reindex_section"]


def _slugs(index: Optional[dict]) -> List[str]:
    if not index:
        return []
    return [e.get("slug") for e in index.get("entries", []) if isinstance(e, dict)]


def reindex_section(maintainer: SectionIndexMaintainer, section: str, *, write: bool) -> dict:
    """Rebuild one section index and report how it differs from the stored one."""
    try:
        current = maintainer.read(section)
    except ValueError:
        # Malformed index blobs are replaced wholesale.
        current = None
    renamed: List[str] = []
    rebuilt = maintainer.rebuild(section, write=write, renamed=renamed)

    before, after = _slugs(current), _slugs(rebuilt)
    return {
        "section": section,
        "entries": len(after),
        "missing": sorted(set(after) - set(before)),
        "stale": sorted(set(before) - set(after)),
        "duplicates": sorted({s for s in before if before.count(s) > 1}),
        "renamed": sorted(renamed),
        "indexExisted": current is not None,
    }


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Rebuild portfolio section indexes from content records")
    parser.add_argument("--section", choices=config.CONTENT_SECTIONS, default=None,
                        help="Only rebuild this section (default: all)")
    parser.add_argument("--bucket", default=config.CONTENT_BUCKET,
                        help="Content bucket (default: $CONTENT_BUCKET or $SITE_BUCKET)")
    parser.add_argument("--region", default=config.AWS_REGION,
                        help=f"AWS region (default: {config.AWS_REGION})")
    parser.add_argument("--write", action="store_true",
                        help="Actually write the rebuilt indexes (default: dry-run)")
    args = parser.parse_args(argv)

    if not args.bucket:
        print("[ERROR] No bucket given. Pass --bucket or set CONTENT_BUCKET.", file=sys.stderr)
        return 1

    sections = [args.section] if args.section else list(config.CONTENT_SECTIONS)
    maintainer = SectionIndexMaintainer(ObjectStore(_get_s3(args.region), args.bucket))

    mode = "LIVE WRITE" if args.write else "DRY RUN"
    print(f"\n{'='*60}")
    print(f"  Section index rebuild — {mode}")
    print(f"{'='*60}")
    print(f"  Bucket   : {args.bucket} ({args.region})")
    print(f"  Sections : {', '.join(sections)}")
    print()

    errors = 0
    for section in sections:
        try:
            report = reindex_section(maintainer, section, write=args.write)
        except (BotoCoreError, ClientError) as e:
            print(f"  ERROR {section}: {e}", file=sys.stderr)
            errors += 1
            continue

        status = "WRITE" if args.write else "PLAN "
        print(f"  {status} {section:<11} entries={report['entries']}"
              f"{'' if report['indexExisted'] else '  (no index yet)'}")
        if report["missing"]:
            print(f"           missing from index: {', '.join(report['missing'])}")
        if report["stale"]:
            print(f"           stale in index    : {', '.join(report['stale'])}")
        if report["duplicates"]:
            print(f"           duplicated slugs  : {', '.join(report['duplicates'])}")
        if report["renamed"]:
            print(f"           renamed away      : {', '.join(report['renamed'])}")

    print()
    print(f"{'='*60}")
    if errors:
        print(f"[WARN] {errors} section(s) failed. Re-run to retry; rebuilding is idempotent.")
        return 1
    if not args.write:
        print("  Re-run with --write to execute.")
        print(f"{'='*60}\n")
        return 0
    print("[SUCCESS] Rebuild complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
