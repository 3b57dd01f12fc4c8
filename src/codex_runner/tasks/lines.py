"""Chunk-to-line reassembly for subprocess output streams."""

import codecs
import re

_LINE_BREAK = re.compile(r"\r?\n")


class LineReassembler:
    """Split an arbitrarily chunked stream into complete lines.

    Each call to ``feed`` returns the lines completed by that chunk; the
    trailing fragment is kept until a later chunk ends it or ``flush`` is
    called at end of stream. Bytes are decoded incrementally, so a
    multi-byte character split across two chunks is decoded once whole.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes | str) -> list[str]:
        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk
        if not text:
            return []

        parts = _LINE_BREAK.split(self._pending + text)
        self._pending = parts.pop()
        return parts

    def flush(self) -> list[str]:
        """Return the retained fragment as a final line, if non-empty."""
        remainder = self._pending + self._decoder.decode(b"", final=True)
        self._pending = ""
        if not remainder:
            return []
        return [remainder]
