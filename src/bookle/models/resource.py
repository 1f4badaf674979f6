"""Binary assets and the content-addressed resource store."""

import base64
import hashlib
import uuid
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, field_serializer, field_validator

from bookle.errors import ResourceNotFound


class InlineData(BaseModel):
    """Bytes held in memory (base64 text on the wire)."""

    storage: Literal["inline"] = "inline"
    data: bytes = b""

    @field_validator("data", mode="before")
    @classmethod
    def _decode_base64(cls, value: Any) -> Any:
        if isinstance(value, str):
            return base64.b64decode(value)
        return value

    @field_serializer("data")
    def _encode_base64(self, value: bytes) -> str:
        return base64.b64encode(value).decode("ascii")

    def as_bytes(self) -> bytes:
        return self.data


class TempFileData(BaseModel):
    """Bytes spooled to a temporary file by an external collaborator."""

    storage: Literal["temp_file"] = "temp_file"
    path: str

    def as_bytes(self) -> bytes:
        raise ResourceNotFound(f"temp file {self.path} is not readable in-process")


class ExternalData(BaseModel):
    """Bytes held by an external storage backend."""

    storage: Literal["external"] = "external"
    backend: str
    path: str

    def as_bytes(self) -> bytes:
        raise ResourceNotFound(
            f"cannot read external resource {self.backend}:{self.path} synchronously"
        )


ResourceData = Annotated[
    Union[InlineData, TempFileData, ExternalData],
    Field(discriminator="storage"),
]


class Resource(BaseModel):
    """A single asset (image, font, stylesheet, ...)."""

    mime_type: str
    data: ResourceData = Field(default_factory=InlineData)
    original_filename: str | None = None

    @classmethod
    def from_bytes(
        cls, mime_type: str, data: bytes, filename: str | None = None
    ) -> "Resource":
        """Create an inline resource."""
        return cls(
            mime_type=mime_type,
            data=InlineData(data=data),
            original_filename=filename,
        )

    @property
    def is_inline(self) -> bool:
        return isinstance(self.data, InlineData)

    def as_bytes(self) -> bytes:
        return self.data.as_bytes()


class ResourceStore(BaseModel):
    """Content-addressed resource store.

    Inline resources are keyed by the SHA-256 hex digest of their bytes, so
    identical content collapses to one entry. Resources whose bytes are not
    in memory get a fresh UUID key instead.
    """

    resources: dict[str, Resource] = Field(default_factory=dict)

    def add(self, resource: Resource) -> str:
        """Add a resource, returning its key."""
        if isinstance(resource.data, InlineData):
            key = hashlib.sha256(resource.data.data).hexdigest()
        else:
            key = str(uuid.uuid4())
        self.resources[key] = resource
        return key

    def get(self, key: str) -> Resource | None:
        return self.resources.get(key)

    def remove(self, key: str) -> Resource | None:
        return self.resources.pop(key, None)

    def keys(self) -> list[str]:
        return list(self.resources)

    def items(self) -> list[tuple[str, Resource]]:
        return list(self.resources.items())

    def is_empty(self) -> bool:
        return not self.resources

    def __len__(self) -> int:
        return len(self.resources)

    def __contains__(self, key: object) -> bool:
        return key in self.resources
