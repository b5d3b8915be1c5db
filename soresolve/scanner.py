"""Binary dependency scanner — DT_NEEDED extraction and system lookup."""

from __future__ import annotations

import os
import shutil
import subprocess
import threading
from dataclasses import dataclass, field
from pathlib import Path

import lief
import structlog

from soresolve.exceptions import BinaryIOError, FormatError

log = structlog.get_logger("soresolve.scanner")

_ELF_MAGIC = b"\x7fELF"
# e_ident (16 bytes) + e_type (2) + e_machine (2)
_ELF_HEADER_PREFIX = 20

# Trusted directories the dynamic loader always searches
_DEFAULT_LIBRARY_DIRS: tuple[str, ...] = ("/lib", "/lib64", "/usr/lib", "/usr/lib64")


@dataclass(frozen=True)
class ElfArch:
    """ELF class (1 = 32-bit, 2 = 64-bit) and e_machine of a file."""

    elf_class: int
    machine: int


def parse_elf_arch(header: bytes) -> ElfArch | None:
    """Read class and machine from the first bytes of an ELF file.

    Returns None when the header is short, not ELF, or carries an unknown
    class or byte order.
    """
    if len(header) < _ELF_HEADER_PREFIX or not header.startswith(_ELF_MAGIC):
        return None
    elf_class, data = header[4], header[5]
    if elf_class not in (1, 2) or data not in (1, 2):
        return None
    machine = int.from_bytes(header[18:20], "little" if data == 1 else "big")
    return ElfArch(elf_class=elf_class, machine=machine)


def read_elf_arch(path: str | os.PathLike) -> ElfArch | None:
    try:
        with open(path, "rb") as fh:
            return parse_elf_arch(fh.read(_ELF_HEADER_PREFIX))
    except OSError:
        return None


@dataclass
class DynamicInfo:
    """The parts of an ELF file that matter for library lookup."""

    needed: list[str] = field(default_factory=list)
    runpath: list[str] = field(default_factory=list)
    rpath: list[str] = field(default_factory=list)
    interpreter: str | None = None
    arch: ElfArch | None = None

    def search_dirs(self, origin: str) -> list[str]:
        """RUNPATH wins over RPATH, as in the dynamic loader."""
        entries = self.runpath or self.rpath
        return [_expand_origin(p, origin) for p in entries if p]


def _expand_origin(path: str, origin: str) -> str:
    return path.replace("${ORIGIN}", origin).replace("$ORIGIN", origin)


def read_dynamic_info(binary_path: str | os.PathLike) -> DynamicInfo:
    """Parse the dynamic section of an ELF file without executing it.

    Raises:
        BinaryIOError: the file is missing or unreadable.
        FormatError: the file is not an ELF binary lief can parse.
    """
    path = Path(binary_path)
    try:
        with open(path, "rb") as fh:
            header = fh.read(_ELF_HEADER_PREFIX)
    except OSError as e:
        raise BinaryIOError(e.errno, f"Cannot read binary {path}: {e.strerror}") from e

    if not header.startswith(_ELF_MAGIC):
        raise FormatError(f"{path} is not an ELF binary")

    binary = lief.ELF.parse(str(path))
    if binary is None:
        raise FormatError(f"Failed to parse ELF structures of {path}")

    info = DynamicInfo(arch=parse_elf_arch(header))
    for entry in binary.dynamic_entries:
        if entry.tag == lief.ELF.DynamicEntry.TAG.NEEDED:
            info.needed.append(entry.name)
        elif entry.tag == lief.ELF.DynamicEntry.TAG.RUNPATH:
            info.runpath.extend(entry.paths)
        elif entry.tag == lief.ELF.DynamicEntry.TAG.RPATH:
            info.rpath.extend(entry.paths)
    if binary.has_interpreter:
        info.interpreter = binary.interpreter
    return info


class SystemLibraries:
    """Answer "can the loader already find this soname?" for the current system.

    Sources, in order: caller-supplied directories (RUNPATH/RPATH),
    LD_LIBRARY_PATH, the ``ldconfig -p`` cache, the default trusted dirs.
    When an ``arch`` is given, a hit only counts if the file is an ELF object
    of that class and machine; the loader skips the others too.
    """

    def __init__(
        self,
        search_dirs: list[str] | None = None,
        ld_library_path: str | None = None,
        ldconfig_cache: dict[str, list[str]] | None = None,
    ) -> None:
        self.search_dirs = list(_DEFAULT_LIBRARY_DIRS if search_dirs is None else search_dirs)
        if ld_library_path is None:
            ld_library_path = os.environ.get("LD_LIBRARY_PATH", "")
        self.env_dirs = [d for d in ld_library_path.split(":") if d]
        self._cache = ldconfig_cache
        self._cache_lock = threading.Lock()

    def _ldconfig_cache(self) -> dict[str, list[str]]:
        with self._cache_lock:
            if self._cache is None:
                self._cache = _read_ldconfig_cache()
            return self._cache

    def locate(
        self,
        soname: str,
        extra_dirs: list[str] | None = None,
        arch: ElfArch | None = None,
    ) -> str | None:
        """Return the path the loader would use for ``soname``, or None."""
        for directory in [*(extra_dirs or []), *self.env_dirs]:
            found = self._usable(Path(directory) / soname, arch)
            if found:
                return found

        for cached in self._ldconfig_cache().get(soname, []):
            if arch is None or read_elf_arch(cached) == arch:
                return cached
            log.debug("scanner.arch_mismatch", soname=soname, path=cached)

        for directory in self.search_dirs:
            found = self._usable(Path(directory) / soname, arch)
            if found:
                return found
        return None

    @staticmethod
    def _usable(candidate: Path, arch: ElfArch | None) -> str | None:
        if not candidate.exists():
            return None
        if arch is not None and read_elf_arch(candidate) != arch:
            log.debug("scanner.arch_mismatch", path=str(candidate))
            return None
        return str(candidate)


def _read_ldconfig_cache() -> dict[str, list[str]]:
    """Parse ``ldconfig -p``. A system without ldconfig (e.g. NixOS) has an empty cache."""
    ldconfig = shutil.which("ldconfig") or ("/sbin/ldconfig" if os.path.exists("/sbin/ldconfig") else None)
    if not ldconfig:
        log.debug("scanner.ldconfig_missing")
        return {}
    try:
        out = subprocess.run(
            [ldconfig, "-p"], capture_output=True, text=True, check=True, timeout=30
        ).stdout
    except (OSError, subprocess.SubprocessError):
        log.warning("scanner.ldconfig_failed", exc_info=True)
        return {}
    return parse_ldconfig_output(out)


def parse_ldconfig_output(output: str) -> dict[str, list[str]]:
    """``\\tlibz.so.1 (libc6,x86-64) => /lib/x86_64-linux-gnu/libz.so.1`` -> {soname: [paths]}.

    Multilib systems list one soname once per architecture; every path is
    kept, in cache order, and the caller picks the one matching its binary.
    """
    cache: dict[str, list[str]] = {}
    for line in output.splitlines():
        if "=>" not in line:
            continue
        left, right = line.split("=>", 1)
        parts = left.split()
        path = right.strip()
        if not parts or not path:
            continue
        paths = cache.setdefault(parts[0], [])
        if path not in paths:
            paths.append(path)
    return cache


class BinaryScanner:
    """Find the sonames a binary needs that the current system cannot provide."""

    def __init__(self, system: SystemLibraries | None = None) -> None:
        self.system = system or SystemLibraries()

    def needed(self, binary_path: str | os.PathLike) -> list[str]:
        """All declared DT_NEEDED sonames, de-duplicated in declaration order."""
        return list(dict.fromkeys(read_dynamic_info(binary_path).needed))

    def scan(
        self,
        binary_path: str | os.PathLike,
        extra_sonames: list[str] | None = None,
    ) -> list[str]:
        """Return the missing sonames of ``binary_path``.

        ``extra_sonames`` are appended unconditionally; callers use them to
        force libraries the binary loads at runtime (dlopen) into the wrapper.
        """
        path = Path(binary_path)
        info = read_dynamic_info(path)
        origin = str(path.resolve().parent)
        extra_dirs = info.search_dirs(origin)

        missing: list[str] = []
        for soname in dict.fromkeys(info.needed):
            found = self.system.locate(soname, extra_dirs, info.arch)
            if found:
                log.debug("scanner.present", soname=soname, path=found)
            else:
                missing.append(soname)

        for soname in extra_sonames or []:
            if soname not in missing:
                missing.append(soname)

        log.info(
            "scanner.done",
            binary=str(path),
            interpreter=info.interpreter,
            elf_class=info.arch.elf_class if info.arch else None,
            machine=info.arch.machine if info.arch else None,
            needed=len(info.needed),
            missing=len(missing),
        )
        if not info.needed and info.interpreter is None:
            log.info("scanner.static_binary", binary=str(path))
        return missing
