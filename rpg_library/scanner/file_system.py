import os
import shutil
import asyncio
from dataclasses import dataclass
from typing import List, Protocol

from send2trash import send2trash


@dataclass(frozen=True)
class DirEntry:
    name: str
    is_dir: bool
    is_file: bool


@dataclass(frozen=True)
class FileStat:
    size: int
    mtime: float


class FileSystem(Protocol):
    """
    The only disk surface the scanner and the cleanup engine touch.
    Every call is awaitable so a scan can interleave with a cleanup
    on one event loop.
    """

    async def exists(self, path: str) -> bool:
        ...

    async def is_dir(self, path: str) -> bool:
        ...

    async def is_file(self, path: str) -> bool:
        ...

    async def list_dir(self, path: str) -> List[DirEntry]:
        """Raises OSError (including PermissionError) when unreadable."""
        ...

    async def read_bytes(self, path: str) -> bytes:
        ...

    async def stat(self, path: str) -> FileStat:
        ...

    async def dir_size(self, path: str) -> int:
        ...

    async def rename(self, src: str, dst: str) -> None:
        ...

    async def copy(self, src: str, dst: str) -> None:
        ...

    async def copy_missing(self, src: str, dst: str) -> None:
        """Recursive copy that leaves anything already present at dst untouched."""
        ...

    async def remove(self, path: str) -> None:
        ...

    async def trash(self, path: str) -> None:
        ...

    async def make_dir(self, path: str) -> None:
        ...


class AsyncFileSystem:
    """
    Real-disk FileSystem.
    Each blocking call is off-loaded with asyncio.to_thread so the event loop
    keeps serving other work while a directory listing or a copy is running.
    """

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.exists, path)

    async def is_dir(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.isdir, path)

    async def is_file(self, path: str) -> bool:
        return await asyncio.to_thread(os.path.isfile, path)

    async def list_dir(self, path: str) -> List[DirEntry]:
        def _scan():
            entries = []
            with os.scandir(path) as it:
                for e in it:
                    try:
                        entries.append(DirEntry(e.name, e.is_dir(), e.is_file()))
                    except OSError:
                        # Entry vanished or is unreadable; treat as neither
                        entries.append(DirEntry(e.name, False, False))
            return entries
        return await asyncio.to_thread(_scan)

    async def read_bytes(self, path: str) -> bytes:
        def _read():
            with open(path, "rb") as f:
                return f.read()
        return await asyncio.to_thread(_read)

    async def stat(self, path: str) -> FileStat:
        st = await asyncio.to_thread(os.stat, path)
        return FileStat(size=st.st_size, mtime=st.st_mtime)

    async def dir_size(self, path: str) -> int:
        def _walk():
            total = 0
            for root, _dirs, files in os.walk(path):
                for name in files:
                    try:
                        total += os.path.getsize(os.path.join(root, name))
                    except OSError:
                        pass
            return total
        return await asyncio.to_thread(_walk)

    async def rename(self, src: str, dst: str) -> None:
        await asyncio.to_thread(os.rename, src, dst)

    async def copy(self, src: str, dst: str) -> None:
        if await self.is_dir(src):
            await asyncio.to_thread(shutil.copytree, src, dst)
        else:
            await asyncio.to_thread(shutil.copy2, src, dst)

    async def copy_missing(self, src: str, dst: str) -> None:
        def _merge():
            if not os.path.isdir(src):
                if not os.path.exists(dst):
                    shutil.copy2(src, dst)
                return
            for root, _dirs, files in os.walk(src):
                target = os.path.join(dst, os.path.relpath(root, src))
                os.makedirs(target, exist_ok=True)
                for name in files:
                    out = os.path.join(target, name)
                    if not os.path.exists(out):
                        shutil.copy2(os.path.join(root, name), out)
        await asyncio.to_thread(_merge)

    async def remove(self, path: str) -> None:
        if await self.is_dir(path):
            await asyncio.to_thread(shutil.rmtree, path)
        else:
            await asyncio.to_thread(os.remove, path)

    async def trash(self, path: str) -> None:
        await asyncio.to_thread(send2trash, path)

    async def make_dir(self, path: str) -> None:
        await asyncio.to_thread(os.mkdir, path)
