from __future__ import annotations

import argparse
import getpass as _getpass
import os
import stat
import sys
import time
from typing import BinaryIO, List, Optional, Tuple

from aef import __version__
from aef.constants import (
    DEFAULT_COMPRESS_LEVEL,
    DEFAULT_SCRYPT_LOG_N,
    DEFAULT_SCRYPT_P,
    DEFAULT_SCRYPT_R,
    MAX_COMPRESS_LEVEL,
    MIN_COMPRESS_LEVEL,
)
from aef.encryption import ScryptParams
from aef.entry import FileType
from aef.errors import AefError, DecryptionError
from aef.perms import get_permissions, set_permissions
from aef.reader import Decoder
from aef.walk import walk
from aef.writer import Encoder


class _Record:
    """Per-member progress lines; stderr keeps stdout free for archive data."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def _emit(self, verb: str, ftype: FileType, path: object) -> None:
        if self.quiet:
            return
        suffix = os.sep if ftype == FileType.DIRECTORY else ""
        print(f"{verb}: {path}{suffix}", file=sys.stderr)

    def add(self, ftype: FileType, path: object) -> None:
        self._emit("Add", ftype, path)

    def write(self, ftype: FileType, path: object) -> None:
        self._emit("Write", ftype, path)


def _clamp_level(level: Optional[int]) -> Optional[int]:
    if level is None:
        return None
    return max(MIN_COMPRESS_LEVEL, min(MAX_COMPRESS_LEVEL, level))


def _prompt_password(confirm: bool = False) -> str:
    pw = _getpass.getpass("Password: ")
    if confirm:
        while _getpass.getpass("Confirm password: ") != pw:
            print("Passwords mismatching, please re-enter", file=sys.stderr)
            pw = _getpass.getpass("Password: ")
    return pw


def _file_identity(target) -> Optional[Tuple[int, int]]:
    """(st_dev, st_ino) of a regular file given by path or open handle; None otherwise."""
    try:
        st = os.stat(target) if isinstance(target, (str, os.PathLike)) else os.fstat(target.fileno())
    except (OSError, ValueError):  # io.UnsupportedOperation for handles without a descriptor
        return None
    if not stat.S_ISREG(st.st_mode):
        return None
    return st.st_dev, st.st_ino


def cmd_encrypt(
    input_path: str,
    output: Optional[str],
    *,
    password: str,
    params: Optional[ScryptParams] = None,
    compress_level: Optional[int] = None,
    quiet: bool = False,
) -> bool:
    """Encrypt a file or directory tree into an archive.

    Args:
        input_path: File or directory to store.
        output: Archive path to create; None streams the archive to stdout.
        password: Archive password.
        params: scrypt cost parameters (defaults when None).
        compress_level: Brotli quality 0..11, or None for no compression.
        quiet: Suppress per-member lines.
    """
    if not os.path.lexists(input_path):
        raise FileNotFoundError(f"Input path does not exist: {input_path}")
    if output is not None and os.path.lexists(output):
        raise FileExistsError(f"'{output}' already exists")

    record = _Record(quiet)
    out_fh: BinaryIO = open(output, "xb") if output is not None else sys.stdout.buffer
    n_files = n_dirs = processed = 0
    t0 = time.time()
    try:
        out_id = _file_identity(out_fh)
        with Encoder(out_fh, password, params, _clamp_level(compress_level)) as enc:
            for rec in walk(input_path):
                perms = get_permissions(rec.absolute_path)
                if rec.is_directory:
                    enc.append_directory(rec.relative_suffix, perms)
                    record.add(FileType.DIRECTORY, rec.relative_suffix)
                    n_dirs += 1
                    continue
                if out_id is not None and _file_identity(rec.absolute_path) == out_id:
                    # never archive the archive being written
                    continue
                with open(rec.absolute_path, "rb") as src:
                    enc.append_file(rec.relative_suffix, perms, src)
                    processed += src.tell()
                record.add(FileType.FILE, rec.relative_suffix)
                n_files += 1
    except BaseException:
        if output is not None:
            out_fh.close()
            # Remove partial output on failure
            if os.path.isfile(output):
                os.remove(output)
        raise
    finally:
        if output is not None:
            out_fh.close()

    dt = max(0.000001, time.time() - t0)
    mib = processed / (1024.0 * 1024.0)
    print(f"Done: {n_files} files, {n_dirs} dirs; {mib:.2f} MiB in {dt:.1f}s", file=sys.stderr)
    return True


def cmd_decrypt(archive: Optional[str], outdir: str, *, password: str, quiet: bool = False) -> bool:
    """Decrypt an archive and replay its members under ``outdir``.

    Args:
        archive: Archive path; None reads the archive from stdin.
        outdir: Destination directory (created when missing).
        password: Archive password.
        quiet: Suppress per-member lines.
    """
    if os.path.exists(outdir) and not os.path.isdir(outdir):
        raise NotADirectoryError(f"The output '{outdir}' must be a directory")

    record = _Record(quiet)
    in_fh: BinaryIO = open(archive, "rb") if archive is not None else sys.stdin.buffer
    dir_modes: List[Tuple[str, Optional[int]]] = []
    n_files = n_dirs = processed = 0
    created = False
    t0 = time.time()
    try:
        with Decoder(in_fh, password) as dec:
            # the header is valid; only now touch the filesystem
            if not os.path.isdir(outdir):
                os.makedirs(outdir)
                created = True
            while True:
                entry = dec.read_entry()
                if entry is None:
                    break
                dst = os.path.join(outdir, str(entry.path))
                if entry.filetype == FileType.DIRECTORY:
                    os.makedirs(dst, exist_ok=True)
                    # applied last so read-only directories can still be filled
                    dir_modes.append((dst, entry.permissions))
                    record.write(entry.filetype, entry.path)
                    n_dirs += 1
                    continue
                os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
                with open(dst, "wb") as out:
                    dec.read_data_to(out)
                    processed += out.tell()
                set_permissions(dst, entry.permissions)
                record.write(entry.filetype, entry.path)
                n_files += 1
    except BaseException:
        # Remove an output directory this run created if nothing was extracted
        if created and os.path.isdir(outdir) and not os.listdir(outdir):
            os.rmdir(outdir)
        raise
    finally:
        if archive is not None:
            in_fh.close()

    for dst, mode in reversed(dir_modes):
        set_permissions(dst, mode)

    dt = max(0.000001, time.time() - t0)
    mib = processed / (1024.0 * 1024.0)
    print(f"Done: extracted {n_files} files, {n_dirs} dirs; {mib:.2f} MiB in {dt:.1f}s", file=sys.stderr)
    return True


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="aef",
        description="Encrypt a file or directory into a password-protected aef archive, or extract one.",
        epilog="Keys are derived with scrypt; every chunk is sealed with AES-256-GCM.",
    )
    ap.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    ap.add_argument("-i", "--input", help="File or directory to encrypt; archive to decrypt (default: stdin)")
    ap.add_argument("-o", "--output", help="Archive to create (default: stdout); directory when decrypting")
    ap.add_argument("-p", "--password", help="Password (prompted when omitted)")
    ap.add_argument("-d", "--decrypt", action="store_true", help="Decrypt an archive")
    ap.add_argument(
        "-c",
        "--compress",
        nargs="?",
        type=int,
        const=DEFAULT_COMPRESS_LEVEL,
        default=None,
        metavar="LEVEL",
        help=f"Enable brotli compression at LEVEL [{MIN_COMPRESS_LEVEL} - {MAX_COMPRESS_LEVEL}] (default {DEFAULT_COMPRESS_LEVEL})",
    )
    ap.add_argument("--scrypt-log-n", type=int, default=DEFAULT_SCRYPT_LOG_N, help="scrypt cost exponent (default %(default)s)")
    ap.add_argument("--scrypt-r", type=int, default=DEFAULT_SCRYPT_R, help="scrypt block size (default %(default)s)")
    ap.add_argument("--scrypt-p", type=int, default=DEFAULT_SCRYPT_P, help="scrypt parallelism (default %(default)s)")
    ap.add_argument("-q", "--quiet", action="store_true", help="limit outputs to summaries only")
    return ap


def main(argv: List[str] | None = None):
    ap = build_parser()
    args = ap.parse_args(argv)
    try:
        if args.decrypt:
            if not args.output:
                ap.error("Must specify the '-o' option")
            password = args.password if args.password is not None else _prompt_password()
            cmd_decrypt(args.input, args.output, password=password, quiet=args.quiet)
        else:
            if not args.input:
                ap.error("Must specify the '-i' option")
            try:
                params = ScryptParams(args.scrypt_log_n, args.scrypt_r, args.scrypt_p)
            except ValueError as e:
                raise ValueError(
                    f"Invalid scrypt params '{args.scrypt_log_n} {args.scrypt_r} {args.scrypt_p}': {e}"
                ) from e
            password = args.password if args.password is not None else _prompt_password(confirm=True)
            cmd_encrypt(
                args.input,
                args.output,
                password=password,
                params=params,
                compress_level=args.compress,
                quiet=args.quiet,
            )
    except DecryptionError:
        print("Error: Decryption failed (wrong password or corrupted archive)", file=sys.stderr)
        sys.exit(2)
    except (AefError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
