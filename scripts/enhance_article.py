"""Run the enhancement workflow inline for one article (no queue).

Usage:
  python scripts/enhance_article.py <article_id>
  python scripts/enhance_article.py --list

Reads configuration from .env via pydantic settings. Requires SERPAPI_KEY and
the API key of the selected LLM_PROVIDER. Prints the structured job result.
"""

from __future__ import annotations

import argparse
import json
from typing import List

from ingestion.db.models import ArticleStatus
from ingestion.db.session import ensure_schema, session_scope
from ingestion.repositories.articles import list_articles
from ingestion.settings import get_settings
from ingestion.utils.logging import configure_logging


def main(argv: List[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Enhance one article without the job queue")
    parser.add_argument("article_id", nargs="?", help="Article id to enhance")
    parser.add_argument("--list", action="store_true", help="List ORIGINAL/FAILED articles and exit")
    args = parser.parse_args(argv)

    cfg = get_settings()
    configure_logging(cfg.structlog_level, json_enabled=cfg.log_json)
    ensure_schema(cfg)

    if args.list or not args.article_id:
        with session_scope(cfg) as session:
            for status in (ArticleStatus.ORIGINAL, ArticleStatus.FAILED):
                for article in list_articles(session, take=100, status=status):
                    print(f"{article.id}  [{article.status.value}]  {article.title[:100]}")
        return 0

    from enhancement.tasks.enhance import build_workflow

    workflow = build_workflow(cfg)
    result = workflow.run(args.article_id, progress=lambda value: print(f"progress {value}%"))
    print(json.dumps(result.model_dump(), ensure_ascii=False, indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
