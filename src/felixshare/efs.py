#!/usr/bin/env python3
"""
FelixShare storage: public files plus encrypted per-identity private spaces.

Layout:
  <root>/
    public/                 # plain files, named by their logical path
      docs/readme.txt
    private/
      <identity>/
        .filemapping.json   # {"docs/notes.txt": "<token>", ...}
        docs/
          <token>           # 16-byte IV || AES-256-CBC(PKCS7) ciphertext

Private file names are replaced by opaque tokens (SHA-256 of name + time);
directory names stay as given. Every private object is sealed under one
storage key, Argon2id(SHA3-512(passphrase)) with a fixed salt, so the key is
the same on every start.

Commands:
  ls [path]            List the logical tree (opaque names translated back)
  put <path> [dest]    Store a file or folder (encrypted when --user is given)
  get <path> [out]     Read a file back (decrypted)
  stream <path>        Serve a byte range (--range bytes=start-end)
  export <path>        Export a folder as <folder>.zip
  rm <path>            Remove a file, or a folder with everything below it
  prune                Drop mapping entries whose object is gone
  mappings             Show the mapping with object status

Note: CBC without a MAC gives confidentiality only; tampering is detected
only when it breaks the padding.
"""
from __future__ import annotations

import sys

from felixshare.ui.cli import build_parser, configure_logging
from felixshare.utils.errors import StorageError


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if getattr(args, "private_only", False) and not args.user:
        parser.error(f"{args.cmd} needs --user")
    configure_logging(args.verbose)
    try:
        args.func(args)
    except StorageError as exc:
        print(f"[!] {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
