import argparse
import json
import logging
import os
import sys

from pathlib import Path
from typing import List

from felixshare.config import Settings
from felixshare.utils.core import Storage, export_folder_to, list_files, open_storage, read_file, store_file, stream_file
from felixshare.utils.dataModels import LogicalEntry
from felixshare.utils.maintain import delete_path, mapping_report, prune_orphans


def storage_from_args(args: argparse.Namespace) -> Storage:
    settings = Settings.from_env()
    if args.root is not None:
        settings.storage_root = Path(args.root)
    if args.passphrase is not None:
        settings.passphrase = args.passphrase
    if args.t is not None:
        settings.t_cost = args.t
    if args.m is not None:
        settings.m_cost_kib = args.m
    if args.p is not None:
        settings.parallelism = args.p
    return open_storage(settings)


def _space(args: argparse.Namespace) -> str:
    return f"private:{args.user}" if args.user else "public"


def _print_tree(entries: List[LogicalEntry], depth: int = 0) -> None:
    for e in entries:
        pad = "  " * depth
        if e.is_dir:
            print(f"{pad}{e.name}/\t({e.file_count} files)")
            _print_tree(e.children, depth + 1)
        else:
            print(f"{pad}{e.name}\t{e.size} bytes")


def cmd_ls(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    entries = list_files(storage, args.user, args.path)
    if args.json:
        print(json.dumps([e.to_dict() for e in entries], indent=2))
        return
    if not entries:
        print("(empty)")
        return
    _print_tree(entries)


def cmd_put(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    src = Path(args.path)
    dest = args.dest or src.name
    if src.is_dir():
        count = 0
        for dirpath, dirnames, filenames in os.walk(src):
            dirnames.sort()
            for name in sorted(filenames):
                local = Path(dirpath) / name
                logical = "/".join((dest,) + local.relative_to(src).parts)
                store_file(storage, args.user, logical, local.read_bytes())
                count += 1
        print(f"[+] Stored {count} files under {dest} ({_space(args)})")
        return
    if not src.is_file():
        print(f"[!] Not a file: {src}")
        sys.exit(1)
    store_file(storage, args.user, dest, src.read_bytes())
    print(f"[+] Stored {src.name} as {dest} ({_space(args)})")


def cmd_get(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    out = Path(args.out or Path(args.path).name)
    out.write_bytes(read_file(storage, args.user, args.path))
    print(f"[+] Extracted {args.path} -> {out}")


def cmd_stream(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    resp = stream_file(storage, args.user, args.path, args.range)
    print(f"[+] {resp.status_code} {resp.status}")
    for name, value in resp.headers.items():
        print(f"    {name}: {value}")
    if args.out:
        with open(args.out, "wb") as f:
            for block in resp.body:
                f.write(block)
        print(f"[+] Wrote body -> {args.out}")


def cmd_export(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    result, target = export_folder_to(storage, args.user, args.path, Path(args.out))
    print(f"[+] Exported {len(result.added)} files -> {target}")
    for failure in result.failed:
        print(f"[!] Skipped {failure.path}: {failure.reason}")


def cmd_rm(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    result = delete_path(storage, args.user, args.path)
    kind = "directory" if result.is_dir else "file"
    print(f"[+] Removed {kind} {result.path} ({len(result.removed)} files)")


def cmd_prune(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    dropped = prune_orphans(storage, args.user)
    for key in dropped:
        print(f"[-] {key}")
    print(f"[+] Pruned {len(dropped)} orphaned entries")


def cmd_mappings(args: argparse.Namespace) -> None:
    storage = storage_from_args(args)
    rows = mapping_report(storage, args.user)
    if not rows:
        print("(empty)")
        return
    for key, token, exists in rows:
        print(f"{key}\t{token}\t{'ok' if exists else 'MISSING'}")


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--root", help="Storage root (default: $FELIXSHARE_STORAGE_ROOT or ./uploads)")
    common.add_argument("--user", help="Identity of the private space (omit for the public space)")
    common.add_argument("--passphrase", help="Storage key passphrase (default: $FELIXSHARE_PASSPHRASE)")
    common.add_argument("-t", type=int, help="Argon2 time cost (iterations)")
    common.add_argument("-m", type=int, help="Argon2 memory (KiB)")
    common.add_argument("-p", type=int, help="Argon2 parallelism")
    common.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")

    p = argparse.ArgumentParser(description="FelixShare storage (public files and encrypted private spaces)")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_ls = sub.add_parser("ls", parents=[common], help="List files")
    p_ls.add_argument("path", nargs="?", help="Logical directory to list (default: top level)")
    p_ls.add_argument("--json", action="store_true", help="Print the listing as JSON")
    p_ls.set_defaults(func=cmd_ls)

    p_put = sub.add_parser("put", parents=[common], help="Store a file or folder")
    p_put.add_argument("path", help="Local file or folder")
    p_put.add_argument("dest", nargs="?", help="Logical destination path (default: local name)")
    p_put.set_defaults(func=cmd_put)

    p_get = sub.add_parser("get", parents=[common], help="Read a file back")
    p_get.add_argument("path", help="Logical file path")
    p_get.add_argument("out", nargs="?", help="Output path (default: file name)")
    p_get.set_defaults(func=cmd_get)

    p_stream = sub.add_parser("stream", parents=[common], help="Serve a byte range of a file")
    p_stream.add_argument("path", help="Logical file path")
    p_stream.add_argument("--range", help="Range header value, e.g. bytes=0-1023")
    p_stream.add_argument("--out", help="Write the body to this path")
    p_stream.set_defaults(func=cmd_stream)

    p_exp = sub.add_parser("export", parents=[common], help="Export a folder as zip")
    p_exp.add_argument("path", help="Logical folder path")
    p_exp.add_argument("--out", default=".", help="Output directory or zip path")
    p_exp.set_defaults(func=cmd_export)

    p_rm = sub.add_parser("rm", parents=[common], help="Remove a file or folder")
    p_rm.add_argument("path", help="Logical path")
    p_rm.set_defaults(func=cmd_rm)

    p_prune = sub.add_parser("prune", parents=[common], help="Drop mapping entries whose object is gone")
    p_prune.set_defaults(func=cmd_prune, private_only=True)

    p_map = sub.add_parser("mappings", parents=[common], help="Show a private space's file mapping")
    p_map.set_defaults(func=cmd_mappings, private_only=True)

    return p


def configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
