"""CLI entrypoint to run one publication runner cycle."""

from __future__ import annotations

from dataclasses import asdict
import argparse
import json
from typing import Any, Dict, List, Optional

from mysteryfactory.core.config import get_settings
from mysteryfactory.publishing.locks import JobLockManager
from mysteryfactory.publishing.runner import PublicationJobRunner, RunnerResult
from mysteryfactory.storage.db import get_session_factory, load_models
from mysteryfactory.storage.redis_client import get_client as get_redis_client


def run_publication_runner_once(*, limit: int | None = None) -> RunnerResult:
    settings = get_settings()
    load_models()

    runner = PublicationJobRunner(
        session_factory=get_session_factory(),
        lock_manager=JobLockManager(
            get_redis_client(),
            ttl_seconds=settings.publication_job_lock_ttl_seconds,
        ),
    )
    return runner.run_once(limit=limit or settings.publication_runner_batch_size)


def _result_to_dict(result: RunnerResult) -> Dict[str, Any]:
    payload = asdict(result)
    payload["runs"] = [asdict(run) for run in result.runs]
    return payload


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Run pending and due publication jobs once.")
    parser.add_argument("--limit", type=int, default=None, help="Max runnable jobs to process.")
    args = parser.parse_args(argv)

    result = run_publication_runner_once(limit=args.limit)
    print(json.dumps(_result_to_dict(result), ensure_ascii=True, separators=(",", ":"), sort_keys=True))


if __name__ == "__main__":
    main()
