"""Wire encoding for the generation log.

A frame is ``CHAIN:{"log": [...], "isComplete": bool}``. Decoders accept the
frame with or without the prefix, find the prefix anywhere in the text, and
ignore whatever follows the JSON body, so the same text always decodes to the
same steps.
"""

import re
import json
import logging
from typing import Iterator

from pydantic import ValidationError

from sitesmith.models import GenerationLog, GenerationLogStep

logger = logging.getLogger(__name__)

LOG_PREFIX = "CHAIN:"
RAW_LOG_START = re.compile(r'\{\s*"log"\s*:')
LOG_ARRAY_START = re.compile(r'"log"\s*:\s*\[')

_decoder = json.JSONDecoder()


def encode_log(log: GenerationLog) -> str:
    return LOG_PREFIX + log.model_dump_json(by_alias=True, exclude_none=True)


def _payload(raw: str) -> str | None:
    """Text from the start of the JSON body, or None when there is no frame."""
    if not raw:
        return None
    idx = raw.find(LOG_PREFIX)
    if idx != -1:
        return raw[idx + len(LOG_PREFIX):].lstrip()
    match = RAW_LOG_START.search(raw)
    if match:
        return raw[match.start():]
    return None


def decode_log(raw: str) -> GenerationLog | None:
    """Decode the first complete frame in ``raw``; None if there is none yet."""
    body = _payload(raw)
    if body is None:
        return None
    try:
        obj, _ = _decoder.raw_decode(body)
        return GenerationLog.model_validate(obj)
    except (json.JSONDecodeError, ValidationError):
        return None


def decode_partial(raw: str) -> GenerationLog:
    """Best-effort decode of a truncated frame: every fully received step, not complete."""
    full = decode_log(raw)
    if full is not None:
        return full

    body = _payload(raw)
    match = LOG_ARRAY_START.search(body) if body else None
    if match is None:
        return GenerationLog()

    steps = []
    pos = match.end()
    while True:
        while pos < len(body) and body[pos] in " \t\r\n,":
            pos += 1
        if pos >= len(body) or body[pos] == "]":
            break
        try:
            obj, pos = _decoder.raw_decode(body, pos)
            steps.append(GenerationLogStep.model_validate(obj))
        except (json.JSONDecodeError, ValidationError):
            break
    return GenerationLog(steps=steps, is_complete=False)


def force_complete(log: GenerationLog) -> GenerationLog:
    """Copy of ``log`` marked complete, for consumers abandoning a stream."""
    return log.model_copy(update={"is_complete": True}, deep=True)


def replay(raw: str) -> Iterator[GenerationLogStep]:
    yield from decode_partial(raw).steps


class LogStreamDecoder:
    """Accumulates arbitrary text chunks and tracks the newest complete frame.

    Chunk boundaries never matter: the result after feeding every chunk equals
    decoding the concatenated text's last complete frame.
    """

    def __init__(self):
        self._buffer = ""
        self.latest: GenerationLog | None = None

    def feed(self, chunk: str) -> GenerationLog | None:
        self._buffer += chunk

        starts = [m.start() for m in re.finditer(re.escape(LOG_PREFIX), self._buffer)]
        for start in reversed(starts):
            log = decode_log(self._buffer[start:])
            if log is not None:
                self.latest = log
                self._buffer = self._buffer[start:]
                break
        else:
            if not starts:
                log = decode_log(self._buffer)
                if log is not None:
                    self.latest = log
        return self.latest

    def finish(self) -> GenerationLog:
        """Newest complete frame, else whatever steps the buffer holds."""
        if self.latest is not None:
            return self.latest
        return decode_partial(self._buffer)
