"""Defensive parsing of streamed NDJSON lines and JSON bodies."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from chesstrack.errors import MalformedDataWarning

ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_record(raw: object, model: type[ModelT]) -> ModelT:
    """Validate one raw record.

    Raises:
        MalformedDataWarning: When the record cannot be decoded or validated.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise MalformedDataWarning(f"invalid JSON line: {exc.msg}") from exc
    if not isinstance(raw, dict):
        raise MalformedDataWarning(f"expected an object, got {type(raw).__name__}")
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise MalformedDataWarning(str(exc)) from exc


def iter_records(
    raw_records: Iterable[object],
    model: type[ModelT],
    logger: logging.Logger,
) -> Iterator[ModelT]:
    """Yield valid records, skipping blank and malformed entries."""
    skipped = 0
    for raw in raw_records:
        if isinstance(raw, str | bytes) and not raw.strip():
            continue
        try:
            yield parse_record(raw, model)
        except MalformedDataWarning as exc:
            skipped += 1
            logger.debug("Skipping malformed %s record: %s", model.__name__, exc)
    if skipped:
        logger.debug("Skipped %s malformed %s record(s)", skipped, model.__name__)


def parse_json_payload(
    body: bytes,
    model: type[ModelT],
    logger: logging.Logger,
) -> ModelT | None:
    """Validate a JSON response body, returning None when it is unusable."""
    if not body.strip():
        logger.warning("Discarding empty %s body", model.__name__)
        return None
    try:
        return parse_record(body, model)
    except MalformedDataWarning as exc:
        logger.warning("Discarding malformed %s payload: %s", model.__name__, exc)
        return None
