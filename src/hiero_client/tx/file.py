"""
File content appends.
"""

from __future__ import annotations
from typing import List, Optional, Union

from ..codec.reader import decode_fields, last
from ..codec.writer import ProtoWriter
from ..runtime.errors import ValidationError
from ..runtime.ids import FileId
from .chunked import ChunkedTransaction

FILE_APPEND_CHUNK_SIZE = 4096


class FileAppendTransaction(ChunkedTransaction):
    """
    Append contents to a file, one chunk per transaction.

    Each chunk's receipt is awaited before the next is sent so the
    appends land in order.
    """

    _data_field = 16
    _grpc_method = "/proto.FileService/appendContent"
    _default_chunk_size = FILE_APPEND_CHUNK_SIZE
    _default_should_get_receipt = True

    def __init__(self):
        super().__init__()
        self._file_id: Optional[FileId] = None

    def set_file_id(self, file_id: Union[str, FileId]) -> FileAppendTransaction:
        self._require_not_frozen()
        self._file_id = FileId.of(file_id)
        return self

    @property
    def file_id(self) -> Optional[FileId]:
        return self._file_id

    def set_contents(self, contents: Union[bytes, str]) -> FileAppendTransaction:
        self._set_data(contents)
        return self

    @property
    def contents(self) -> bytes:
        return self._data

    def _on_freeze(self, client) -> None:
        if self._file_id is None:
            raise ValidationError("FileAppendTransaction requires a file id")
        super()._on_freeze(client)

    def _encode_data(self, chunk: int) -> bytes:
        w = ProtoWriter()
        w.message_field(2, self._file_id.encode() if self._file_id else None)
        w.bytes_field(4, self._chunk_data(chunk))
        return w.to_bytes()

    def _decode_data(self, payloads: List[bytes]) -> None:
        chunks = []
        for payload in payloads:
            fields = decode_fields(payload)
            file_id = last(fields, 2)
            if file_id is not None:
                self._file_id = FileId.decode(file_id)
            chunks.append(last(fields, 4, b""))
        self._restore_chunks(chunks)


__all__ = ["FileAppendTransaction", "FILE_APPEND_CHUNK_SIZE"]
