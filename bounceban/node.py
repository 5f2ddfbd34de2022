"""Workflow step that verifies each input record's email address with BounceBan.

Records are processed either one after another (``sequential``) or concurrently
on up to ``Settings.max_workers`` threads (``batch``). Both modes return one output item per input record, in input order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Sequence

import requests

from . import client
from .config import DEFAULT_MAX_WORKERS, Settings
from .errors import CredentialsError, NodeOperationError
from .models import (
    MODE_BATCH,
    OPERATION_VALIDATE_EMAIL,
    OPERATIONS,
    RESULT_FIELD,
    BounceBanCredentials,
    NodeParameters,
    OutputItem,
    resolve_parameter,
)

logger = logging.getLogger(__name__)

MISSING_EMAIL = "Email address is required"


def _output(record: Dict[str, Any], index: int, result: Any) -> OutputItem:
    return OutputItem(json={**record, RESULT_FIELD: result}, paired_item=index)


def _error_output(record: Dict[str, Any], index: int, error: Exception) -> OutputItem:
    return _output(record, index, {"error": str(error)})


def process_item(
    record: Dict[str, Any],
    index: int,
    params: NodeParameters,
    credentials: BounceBanCredentials,
    settings: Settings,
    session: Optional[requests.Session] = None,
) -> OutputItem:
    """Verify a single record. API failures propagate to the caller."""
    if params.operation != OPERATION_VALIDATE_EMAIL:
        raise NodeOperationError(
            "Unknown operation",
            description=f"Unknown operation: {params.operation}",
            item_index=index,
        )

    email = resolve_parameter(params.email, record, index)
    if not email:
        logger.info("Item %d has no email address, skipping request", index)
        return _output(record, index, {"error": MISSING_EMAIL})

    options = params.options.resolve(record, index)
    logger.debug("Verifying item %d: %s %s", index, email, options)
    result = client.verify_single(email, credentials, settings, options=options, session=session)
    return _output(record, index, result)


def _run_sequential(
    records: Sequence[Dict[str, Any]],
    params: NodeParameters,
    credentials: BounceBanCredentials,
    settings: Settings,
) -> List[OutputItem]:
    items: List[OutputItem] = []
    with requests.Session() as session:
        for index, record in enumerate(records):
            try:
                items.append(process_item(record, index, params, credentials, settings, session))
            except Exception as e:
                if params.continue_on_fail:
                    logger.warning("Item %d failed, continuing: %s", index, e)
                    items.append(_error_output(record, index, e))
                    continue
                logger.error("Item %d failed, stopping: %s", index, e)
                raise NodeOperationError(
                    str(e),
                    description=getattr(e, "description", None),
                    item_index=index,
                ) from e
    return items


def _run_batch(
    records: Sequence[Dict[str, Any]],
    params: NodeParameters,
    credentials: BounceBanCredentials,
    settings: Settings,
) -> List[OutputItem]:
    if not records:
        return []

    def work(index: int) -> OutputItem:
        record = records[index]
        try:
            return process_item(record, index, params, credentials, settings)
        except Exception as e:
            logger.warning("Item %d failed: %s", index, e)
            return _error_output(record, index, e)

    workers = settings.max_workers or DEFAULT_MAX_WORKERS
    workers = max(1, min(workers, len(records)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() yields in submission order
        return list(pool.map(work, range(len(records))))


def execute(
    records: Sequence[Dict[str, Any]],
    params: NodeParameters,
    credentials: BounceBanCredentials,
    settings: Optional[Settings] = None,
) -> List[OutputItem]:
    """Run the step over ``records`` and return one OutputItem per record.

    Raises CredentialsError without an API key and NodeOperationError for an
    unknown operation, before any request is made. In sequential mode the first
    failing record raises NodeOperationError unless ``continue_on_fail`` is set;
    batch mode always embeds failures as ``{"error": message}``.
    """
    settings = settings or Settings()
    if not credentials.api_key:
        raise CredentialsError("BounceBan API key is required")
    if params.operation not in OPERATIONS:
        raise NodeOperationError(
            "Unknown operation",
            description=f"Unknown operation: {params.operation}",
        )

    logger.info(
        "Verifying %d record(s) in %s mode", len(records), params.processing_mode
    )
    if params.processing_mode == MODE_BATCH:
        items = _run_batch(records, params, credentials, settings)
    else:
        items = _run_sequential(records, params, credentials, settings)

    failed = sum(1 for item in items if item.failed)
    logger.info("Finished: %d ok, %d failed", len(items) - failed, failed)
    return items
