"""Request/response models shared by several routers. Wire names are camelCase."""
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Blob(BaseModel):
    """Opaque client-encrypted payload; stored and returned verbatim."""
    ct: Optional[str] = None
    iv: Optional[str] = None


class BlobResponse(BaseModel):
    vault: Optional[Blob] = None


class OkResponse(CamelModel):
    ok: bool = True
    message: Optional[str] = None
