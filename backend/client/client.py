# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20260206v1
# ---------------------------------------------------------------------------
"""
Vault client – one typed method per server endpoint.

All sealing and opening happens here; the server only ever sees ciphertext.

Item fields
-----------
Every string field is sealed on its own with a fresh nonce, appended to the
end of the hex blob (``Crypter.seal_string_without_nonce``).  On read, each
field is opened independently.  If any field fails, the record is dropped
and a single :class:`FieldsError` names every failing field.

Files
-----
One nonce per file.  Upload frames are::

    FILE_INFO {id, name, meta}  ·  CONTENT nonce  ·  CONTENT seal(chunk)…

where each plaintext chunk is at most the server's chunk size, so each
sealed chunk is at most ``chunk_size + TAG_SIZE`` bytes.  The server stores
the CONTENT payloads back to back and replays the blob in ``chunk_size``
pieces, which do not line up with sealed chunks.  The download therefore
re-cuts the ciphertext stream at ``chunk_size + TAG_SIZE`` boundaries.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, Optional

import httpx
from pydantic import BaseModel

from client.interceptor import TokenInterceptor
from client.records import Bank, File, Password, Text
from core.crypter import TAG_SIZE, CryptoError, Crypter, NonceLocation, split_nonce
from core.framing import FrameKind, FramingError, encode_frame, frame_limit, iter_frames
from core.status import StatusCode, StatusError

FRAMES_MEDIA_TYPE = "application/octet-stream"


class FieldsError(CryptoError):
    """Sealing or opening failed for one or more fields of a record."""

    def __init__(self, action: str, errors: dict[str, Exception]):
        self.errors = errors
        joined = "; ".join(f"{field}: {exc}" for field, exc in errors.items())
        super().__init__(f"cannot {action} fields {', '.join(errors)}: {joined}")


@dataclass(frozen=True)
class _Kind:
    name: str
    path: str
    list_key: str
    record: type
    fields: tuple[str, ...]


_PASSWORDS = _Kind("Password", "/passwords", "passwords", Password, ("name", "login", "password", "meta"))
_BANKS = _Kind("Bank", "/banks", "banks", Bank, ("name", "card_number", "cvc", "owner", "expiration", "meta"))
_TEXTS = _Kind("Text", "/texts", "texts", Text, ("name", "text", "meta"))
_FILES = _Kind("File", "/files", "files", File, ("name", "meta"))


def _check(response: httpx.Response) -> httpx.Response:
    """Return *response* if it succeeded, else raise the server's StatusError."""
    if response.is_success:
        return response

    fallback = StatusCode.from_http_status(response.status_code)
    try:
        body = response.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        body = {"code": fallback.value, "detail": response.text or response.reason_phrase}
    raise StatusError.from_dict(body, fallback)


class VaultClient:
    """
    Usage::

        crypter = Crypter.from_key_file("key.aes")
        with VaultClient.connect(crypter, "http://localhost:8000") as vault:
            vault.sign_in("alice", "s3cret")
            vault.create_password(Password(name="github", password="hunter2"))

    Any ``httpx.Client`` works as transport, including FastAPI's TestClient.
    """

    def __init__(self, crypter: Crypter, http: httpx.Client, tokens: Optional[TokenInterceptor] = None):
        self._crypter = crypter
        self._http = http
        self.tokens = tokens or TokenInterceptor()
        self.tokens.install(http)

    @classmethod
    def connect(cls, crypter: Crypter, base_url: str, timeout: float = 30.0) -> "VaultClient":
        return cls(crypter, httpx.Client(base_url=base_url, timeout=timeout))

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "VaultClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    # -- plumbing ------------------------------------------------------------

    def _call(self, method: str, url: str, **kwargs) -> httpx.Response:
        return _check(self._http.request(method, url, **kwargs))

    @staticmethod
    def _item_url(kind: _Kind, item_id: str) -> str:
        # A blank id would collapse onto the collection route
        if not item_id or not item_id.strip():
            raise StatusError(StatusCode.INVALID_ARGUMENT, f"empty {kind.name}ID")
        return f"{kind.path}/{item_id}"

    def _seal(self, record: BaseModel, fields: Iterable[str]) -> dict[str, str]:
        sealed, errors = {}, {}
        for field in fields:
            try:
                sealed[field] = self._crypter.seal_string_without_nonce(getattr(record, field))
            except CryptoError as exc:
                errors[field] = exc
        if errors:
            raise FieldsError("seal", errors)
        return sealed

    def _open(self, wire: dict, kind: _Kind):
        opened, errors = {}, {}
        for field in kind.fields:
            try:
                opened[field] = self._crypter.open_string_without_nonce(wire.get(field, ""))
            except CryptoError as exc:
                errors[field] = exc
        if errors:
            raise FieldsError("open", errors)
        return kind.record(id=wire["id"], updated_at=wire.get("updated_at"), **opened)

    # -- generic item calls --------------------------------------------------

    def _create(self, kind: _Kind, record: BaseModel) -> str:
        return self._call("POST", kind.path, json=self._seal(record, kind.fields)).json()["id"]

    def _update(self, kind: _Kind, record: BaseModel) -> str:
        body = self._seal(record, kind.fields)
        return self._call("PUT", self._item_url(kind, record.id), json=body).json()["id"]

    def _get(self, kind: _Kind, item_id: str):
        return self._open(self._call("GET", self._item_url(kind, item_id)).json(), kind)

    def _get_all(self, kind: _Kind) -> list:
        # One unreadable record fails the whole listing
        wire = self._call("GET", kind.path).json()[kind.list_key]
        return [self._open(item, kind) for item in wire]

    def _delete(self, kind: _Kind, item_id: str) -> None:
        self._call("DELETE", self._item_url(kind, item_id))

    # -- auth ----------------------------------------------------------------

    def register(self, login: str, password: str) -> str:
        """Create an account.  The returned token is also kept for later calls."""
        return self._call("POST", "/auth/register", json={"login": login, "password": password}).json()["token"]

    def sign_in(self, login: str, password: str) -> str:
        return self._call("POST", "/auth/login", json={"login": login, "password": password}).json()["token"]

    def get_chunk_size(self) -> int:
        return self._call("GET", "/files/chunk-size").json()["size"]

    # -- passwords -----------------------------------------------------------

    def create_password(self, password: Password) -> str:
        return self._create(_PASSWORDS, password)

    def update_password(self, password: Password) -> str:
        return self._update(_PASSWORDS, password)

    def get_password(self, password_id: str) -> Password:
        return self._get(_PASSWORDS, password_id)

    def get_all_passwords(self) -> list[Password]:
        return self._get_all(_PASSWORDS)

    def delete_password(self, password_id: str) -> None:
        self._delete(_PASSWORDS, password_id)

    # -- banks ---------------------------------------------------------------

    def create_bank(self, bank: Bank) -> str:
        return self._create(_BANKS, bank)

    def update_bank(self, bank: Bank) -> str:
        return self._update(_BANKS, bank)

    def get_bank(self, bank_id: str) -> Bank:
        return self._get(_BANKS, bank_id)

    def get_all_banks(self) -> list[Bank]:
        return self._get_all(_BANKS)

    def delete_bank(self, bank_id: str) -> None:
        self._delete(_BANKS, bank_id)

    # -- texts ---------------------------------------------------------------

    def create_text(self, text: Text) -> str:
        return self._create(_TEXTS, text)

    def update_text(self, text: Text) -> str:
        return self._update(_TEXTS, text)

    def get_text(self, text_id: str) -> Text:
        return self._get(_TEXTS, text_id)

    def get_all_texts(self) -> list[Text]:
        return self._get_all(_TEXTS)

    def delete_text(self, text_id: str) -> None:
        self._delete(_TEXTS, text_id)

    # -- files ---------------------------------------------------------------

    def get_all_files(self) -> list[File]:
        return self._get_all(_FILES)

    def delete_file(self, file_id: str) -> None:
        self._delete(_FILES, file_id)

    def create_file(self, name: str, path: str | Path, meta: str = "") -> str:
        """Upload the local file at *path*; returns the new file id."""
        return self._upload("POST", File(name=name, meta=meta), path)

    def update_file(self, file_id: str, name: str, path: str | Path, meta: str = "") -> str:
        """Replace content, name and meta of file *file_id*."""
        return self._upload("PUT", File(id=file_id, name=name, meta=meta), path)

    def get_file(self, file_id: str, directory: str | Path) -> Path:
        """Download file *file_id* into ``<directory>/<file_id>`` and return that path."""
        if not file_id or Path(file_id).name != file_id:
            raise ValueError(f"invalid file id {file_id!r}")
        chunk_size = self.get_chunk_size()
        target = Path(directory) / file_id

        with self._http.stream("GET", f"{_FILES.path}/{file_id}") as response:
            if not response.is_success:
                response.read()
                _check(response)
            try:
                with open(target, "wb") as out:
                    self._receive(response.iter_bytes(), out, chunk_size)
            except Exception:
                target.unlink(missing_ok=True)
                raise
        return target

    def _upload(self, method: str, info: File, path: str | Path) -> str:
        chunk_size = self.get_chunk_size()
        header = {"id": info.id, **self._seal(info, _FILES.fields)}

        # Opened up front so a missing file fails before the stream starts
        with open(path, "rb") as source:
            response = self._http.request(
                method,
                _FILES.path,
                content=self._send(header, source, chunk_size),
                headers={"Content-Type": FRAMES_MEDIA_TYPE},
            )
        return _check(response).json()["id"]

    def _send(self, header: dict, source: BinaryIO, chunk_size: int) -> Iterator[bytes]:
        limit = frame_limit(chunk_size)
        nonce = self._crypter.generate_nonce()
        yield encode_frame(FrameKind.FILE_INFO, json.dumps(header).encode("utf-8"), limit)
        yield encode_frame(FrameKind.CONTENT, nonce, limit)
        while True:
            chunk = source.read(chunk_size)
            if not chunk:
                return
            yield encode_frame(FrameKind.CONTENT, self._crypter.seal_bytes(chunk, nonce), limit)

    def _receive(self, data: Iterable[bytes], out: BinaryIO, chunk_size: int) -> File:
        sealed_size = chunk_size + TAG_SIZE
        info: Optional[File] = None
        nonce = b""
        still_needed = self._crypter.nonce_size
        pending = bytearray()

        for kind, payload in iter_frames(data, frame_limit(chunk_size)):
            if kind is FrameKind.STATUS:
                raise StatusError.from_dict(json.loads(payload))
            if kind is FrameKind.FILE_INFO:
                info = File.model_validate_json(payload)
                continue
            if info is None:
                raise FramingError("content before file info")

            if still_needed:
                fragment, body, still_needed = split_nonce(payload, still_needed, NonceLocation.AT_FRONT)
                nonce += fragment
                if body is None:
                    continue
                payload = body

            pending.extend(payload)
            while len(pending) >= sealed_size:
                out.write(self._crypter.open_bytes(bytes(pending[:sealed_size]), nonce))
                del pending[:sealed_size]

        if info is None:
            raise FramingError("stream ended without file info")
        if still_needed:
            raise CryptoError(f"stream ended {still_needed} bytes short of the nonce")
        if pending:
            out.write(self._crypter.open_bytes(bytes(pending), nonce))
        return info
