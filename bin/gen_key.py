# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Bootstrap script – creates the client's AES key file.

Run once per client installation:
    python bin/gen_key.py [folder] [key_size]

Writes ``<folder>/key.aes`` (mode 0600).  Every item and file the client
stores is sealed with this key; losing it makes them unreadable, and the
server holds no copy.
"""

import sys
import os

# ---------------------------------------------------------------------------
# Path setup so backend modules are importable
# ---------------------------------------------------------------------------
# bin/gen_key.py  →  ../  →  project root
_PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
_BACKEND_DIR  = os.path.join(_PROJECT_ROOT, "backend")
if _BACKEND_DIR not in sys.path:
    sys.path.insert(0, _BACKEND_DIR)

from core.crypter import DEFAULT_KEY_SIZE, KEY_FILE_NAME, Crypter   # noqa: E402


def generate(folder: str = ".", key_size: int = DEFAULT_KEY_SIZE):
    if os.path.exists(os.path.join(folder, KEY_FILE_NAME)):
        print(f"[gen_key] {os.path.join(folder, KEY_FILE_NAME)} already exists – skipping.")
        return

    _, path = Crypter.generate(key_size, folder)
    print(f"[gen_key] {key_size * 8}-bit key written to {path}.")


if __name__ == "__main__":
    args = sys.argv[1:]
    generate(args[0] if args else ".", int(args[1]) if len(args) > 1 else DEFAULT_KEY_SIZE)
