"""
Unit tests for LocalFileSource.
"""

import os
from datetime import datetime, timezone

import pytest

from assetserver.errors import AssetIOError, AssetNotFound
from assetserver.source import LocalFileSource


class TestStat:

    @pytest.mark.asyncio
    async def test_file(self, asset_root):
        metadata = await LocalFileSource(str(asset_root)).stat("hello.txt")

        assert metadata.exists
        assert not metadata.is_directory
        assert metadata.size == 13
        assert metadata.modified_at == datetime(2024, 6, 15, 10, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_directory(self, asset_root):
        metadata = await LocalFileSource(str(asset_root)).stat("sub")
        assert metadata.exists and metadata.is_directory

    @pytest.mark.asyncio
    async def test_root(self, asset_root):
        assert (await LocalFileSource(str(asset_root)).stat("")).is_directory

    @pytest.mark.asyncio
    async def test_missing(self, asset_root):
        assert not (await LocalFileSource(str(asset_root)).stat("nope.txt")).exists

    @pytest.mark.asyncio
    async def test_path_through_a_file(self, asset_root):
        """hello.txt/x: a component that is not a directory means absent."""
        assert not (await LocalFileSource(str(asset_root)).stat("hello.txt/x")).exists

    @pytest.mark.asyncio
    async def test_symlink_inside_root(self, asset_root):
        try:
            (asset_root / "alias.txt").symlink_to(asset_root / "hello.txt")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        assert (await LocalFileSource(str(asset_root)).stat("alias.txt")).size == 13

    @pytest.mark.asyncio
    async def test_symlink_loop_is_io_error(self, asset_root):
        try:
            (asset_root / "loop_a").symlink_to(asset_root / "loop_b")
            (asset_root / "loop_b").symlink_to(asset_root / "loop_a")
        except (OSError, NotImplementedError):
            pytest.skip("symlinks not supported")

        with pytest.raises(AssetIOError):
            await LocalFileSource(str(asset_root)).stat("loop_a")

    @pytest.mark.asyncio
    async def test_permission_denied_is_io_error(self, asset_root):
        if hasattr(os, "geteuid") and os.geteuid() == 0:
            pytest.skip("root ignores directory permissions")

        locked = asset_root / "locked"
        locked.mkdir()
        (locked / "file.txt").write_bytes(b"x")
        locked.chmod(0)
        try:
            with pytest.raises(AssetIOError) as exc_info:
                await LocalFileSource(str(asset_root)).stat("locked/file.txt")
            assert isinstance(exc_info.value.cause, PermissionError)
        finally:
            locked.chmod(0o755)


class TestRead:

    @pytest.mark.asyncio
    async def test_whole_file(self, asset_root):
        assert await LocalFileSource(str(asset_root)).read("hello.txt") == b"Hello, World!"

    @pytest.mark.asyncio
    async def test_window(self, asset_root):
        assert await LocalFileSource(str(asset_root)).read("hello.txt", 7, 11) == b"World"

    @pytest.mark.asyncio
    async def test_vanished_file(self, asset_root):
        with pytest.raises(AssetNotFound):
            await LocalFileSource(str(asset_root)).read("nope.txt")
