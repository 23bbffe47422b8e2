"""Tests for streaming downloads."""

from __future__ import annotations

import asyncio
import errno
from pathlib import Path
from typing import AsyncIterator

import httpx
import pytest

import chainhttp.executor
import chainhttp.transport
from chainhttp.client import Client
from chainhttp.executor import Transfer
from chainhttp.models import TransferState
from chainhttp.sinks import FileSink


URL = "http://xtuer.github.io/img/dog.png"


def _chunked(*chunks: bytes, fail_after: bool = False):
    """Handler streaming *chunks*, optionally failing once they are sent."""

    def handler(request: httpx.Request) -> httpx.Response:
        async def body() -> AsyncIterator[bytes]:
            for chunk in chunks:
                await asyncio.sleep(0)
                yield chunk
            if fail_after:
                raise httpx.ReadError("Connection reset by peer", request=request)

        return httpx.Response(200, content=body())

    return handler


class _FullDisk:
    """File stand-in whose writes fail as if the disk were full."""

    def __init__(self, file) -> None:
        self._file = file

    def write(self, data: bytes) -> int:
        raise OSError(errno.ENOSPC, "No space left on device")

    def flush(self) -> None:
        self._file.flush()

    def close(self) -> None:
        self._file.close()


@pytest.fixture
def file_sinks(monkeypatch: pytest.MonkeyPatch) -> list[FileSink]:
    """Record every FileSink the executor creates."""
    created: list[FileSink] = []

    class RecordingFileSink(FileSink):
        def __init__(self, path) -> None:
            super().__init__(path)
            created.append(self)

    monkeypatch.setattr(chainhttp.executor, "FileSink", RecordingFileSink)
    return created


class TestChunkSink:
    def test_chunks_arrive_in_order_then_finish(self, install_handler) -> None:
        factory = install_handler(_chunked(b"aaa", b"bbb", b"ccc"))
        events: list[object] = []
        holder: dict[str, Transfer] = {}

        def on_chunk(chunk: bytes) -> None:
            events.append((chunk, holder["transfer"].state))

        async def main() -> None:
            holder["transfer"] = Client(URL).download(
                on_chunk, lambda: events.append("finish"), events.append
            )
            await holder["transfer"]

        asyncio.run(main())

        assert events == [
            (b"aaa", TransferState.STREAMING),
            (b"bbb", TransferState.STREAMING),
            (b"ccc", TransferState.STREAMING),
            "finish",
        ]
        assert holder["transfer"].state is TransferState.COMPLETED
        assert factory.clients[0].close_calls == 1

    def test_download_sends_get_with_query(self, install_handler) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"x")

        install_handler(handler)

        async def main() -> None:
            await Client(URL).param("size", "large").header("Range", "bytes=0-").download(
                lambda chunk: None
            )

        asyncio.run(main())

        assert seen[0].method == "GET"
        assert seen[0].url.params["size"] == "large"
        assert seen[0].headers["range"] == "bytes=0-"

    def test_non_ascii_header_value_is_sent_as_utf8(self, install_handler) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"x")

        install_handler(handler)
        errors: list[str] = []

        async def main() -> None:
            await Client(URL).header("X-Name", "诸葛亮").download(
                lambda chunk: None, None, errors.append
            )

        asyncio.run(main())

        assert errors == []
        assert seen[0].headers["x-name"] == "诸葛亮"

    def test_stream_error_fires_error_not_finish(self, install_handler) -> None:
        factory = install_handler(_chunked(b"aaa", fail_after=True))
        chunks: list[bytes] = []
        finished: list[bool] = []
        errors: list[str] = []

        async def main() -> None:
            transfer = Client(URL).download(
                chunks.append, lambda: finished.append(True), errors.append
            )
            await transfer
            assert transfer.state is TransferState.FAILED

        asyncio.run(main())

        assert chunks == [b"aaa"]
        assert finished == []
        assert errors == ["ReadError: Connection reset by peer"]
        assert factory.clients[0].close_calls == 1

    def test_connect_error_fires_error(self, install_handler) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Name or service not known", request=request)

        install_handler(handler)
        errors: list[str] = []

        async def main() -> None:
            await Client(URL).download(lambda chunk: None, None, errors.append)

        asyncio.run(main())

        assert errors == ["ConnectError: Name or service not known"]

    def test_chunk_handler_exception_fails_transfer_and_propagates(
        self, install_handler
    ) -> None:
        factory = install_handler(_chunked(b"aaa", b"bbb"))
        finished: list[bool] = []
        errors: list[str] = []

        def on_chunk(chunk: bytes) -> None:
            raise ValueError("unexpected chunk")

        async def main() -> None:
            transfer = Client(URL).download(on_chunk, lambda: finished.append(True), errors.append)
            with pytest.raises(ValueError, match="unexpected chunk"):
                await transfer
            assert transfer.state is TransferState.FAILED

        asyncio.run(main())

        assert finished == []
        assert errors == []
        assert factory.clients[0].close_calls == 1


class TestFileSink:
    def test_three_chunks_produce_exact_file_and_finish_after_close(
        self, install_handler, tmp_path: Path
    ) -> None:
        install_handler(_chunked(b"a" * 3000, b"b" * 3000, b"c" * 3000))
        dest = tmp_path / "dog.png"
        finish_sizes: list[int] = []
        errors: list[str] = []

        async def main() -> None:
            await Client(URL).download(
                dest, lambda: finish_sizes.append(dest.stat().st_size), errors.append
            )

        asyncio.run(main())

        assert finish_sizes == [9000]
        assert errors == []
        assert dest.read_bytes() == b"a" * 3000 + b"b" * 3000 + b"c" * 3000

    def test_unopenable_destination_fails_synchronously(
        self, install_handler, tmp_path: Path
    ) -> None:
        calls: list[httpx.Request] = []
        factory = install_handler(lambda request: calls.append(request) or httpx.Response(200))
        dest = tmp_path / "missing-dir" / "dog.png"
        errors: list[str] = []
        finished: list[bool] = []

        async def main() -> None:
            transfer = Client(URL).download(dest, lambda: finished.append(True), errors.append)
            assert transfer.state is TransferState.FAILED
            assert len(errors) == 1
            await transfer

        asyncio.run(main())

        assert errors[0].startswith(f"Cannot open file for writing: {dest}")
        assert finished == []
        assert calls == []
        assert factory.clients == []

    def test_failed_stream_still_closes_file_before_error(
        self, install_handler, tmp_path: Path
    ) -> None:
        install_handler(_chunked(b"partial", fail_after=True))
        dest = tmp_path / "out.bin"
        sizes_at_error: list[int] = []

        async def main() -> None:
            await Client(URL).download(
                dest, None, lambda message: sizes_at_error.append(dest.stat().st_size)
            )

        asyncio.run(main())

        assert sizes_at_error == [len(b"partial")]

    def test_accepts_string_path(self, install_handler, tmp_path: Path) -> None:
        install_handler(lambda request: httpx.Response(200, content=b"woof"))
        dest = tmp_path / "dog.txt"

        async def main() -> None:
            await Client(URL).download(str(dest))

        asyncio.run(main())

        assert dest.read_bytes() == b"woof"

    def test_shared_transport_download(self, install_handler, make_manager, tmp_path: Path) -> None:
        factory = install_handler(lambda request: httpx.Response(200))
        manager = make_manager(_chunked(b"12", b"34"))
        dest = tmp_path / "shared.bin"

        async def main() -> None:
            await Client(URL).manager(manager).download(dest)

        asyncio.run(main())

        assert dest.read_bytes() == b"1234"
        assert factory.clients == []
        assert manager.close_calls == 0

    def test_write_error_aborts_and_goes_to_error_handler(
        self, install_handler, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        factory = install_handler(_chunked(b"aaa", b"bbb"))
        dest = tmp_path / "full.bin"
        sinks: list[FileSink] = []

        class FullDiskSink(FileSink):
            def open(self) -> None:
                super().open()
                self._file = _FullDisk(self._file)
                sinks.append(self)

        monkeypatch.setattr(chainhttp.executor, "FileSink", FullDiskSink)
        finished: list[bool] = []
        errors: list[str] = []

        async def main() -> None:
            transfer = Client(URL).download(dest, lambda: finished.append(True), errors.append)
            await transfer
            assert transfer.state is TransferState.FAILED

        asyncio.run(main())

        assert errors == [f"Cannot write to file: {dest} (No space left on device)"]
        assert finished == []
        assert sinks[0].closed
        assert factory.clients[0].close_calls == 1

    def test_file_is_closed_when_transport_cannot_be_built(
        self, tmp_path: Path, file_sinks: list[FileSink], monkeypatch: pytest.MonkeyPatch
    ) -> None:
        def broken(config, limits=None):
            raise ValueError("bad verify setting")

        monkeypatch.setattr(chainhttp.transport, "build_client", broken)

        async def main() -> None:
            with pytest.raises(ValueError, match="bad verify setting"):
                Client(URL).download(tmp_path / "dog.png")

        asyncio.run(main())

        assert file_sinks[0].closed
