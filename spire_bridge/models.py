from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .errors import InvalidArgumentsError


# Enums and Constants
class ActivityResult:
    RESULT_OK = -1
    RESULT_CANCELED = 0


class IntentFlags:
    FLAG_GRANT_READ_URI_PERMISSION = 0x00000001
    FLAG_GRANT_WRITE_URI_PERMISSION = 0x00000002
    FLAG_GRANT_PERSISTABLE_URI_PERMISSION = 0x00000040
    FLAG_GRANT_PREFIX_URI_PERMISSION = 0x00000080

    READ_WRITE = FLAG_GRANT_READ_URI_PERMISSION | FLAG_GRANT_WRITE_URI_PERMISSION
    # Flags the directory chooser is launched with
    TREE_PICK = (
        FLAG_GRANT_READ_URI_PERMISSION
        | FLAG_GRANT_WRITE_URI_PERMISSION
        | FLAG_GRANT_PERSISTABLE_URI_PERMISSION
        | FLAG_GRANT_PREFIX_URI_PERMISSION
    )


class ChannelMethod:
    PICK_TREE = "pickTree"
    COPY_TO_TREE = "copyToTree"
    OPEN_TREE = "openTree"
    COPY_TO_DOWNLOADS = "copyToDownloads"
    GET_FILES_DIR = "getFilesDir"
    GET_CACHE_DIR = "getCacheDir"
    GET_EXTERNAL_FILES_DIR = "getExternalFilesDir"


class ChooserResult(BaseModel):
    """What the host directory chooser hands back when it returns control"""
    result_code: int
    uri: Optional[str] = None
    flags: int = 0

    @property
    def ok(self) -> bool:
        return self.result_code == ActivityResult.RESULT_OK


class _CopyArguments(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    source_path: str = Field(..., alias="sourcePath")
    display_name: str = Field(..., alias="displayName")
    mime_type: str = Field(..., alias="mimeType")
    subdir: Optional[str] = None

    @field_validator("source_path", "display_name", "mime_type")
    @classmethod
    def not_blank(cls, v):
        if v is None or not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("subdir")
    @classmethod
    def blank_subdir_is_none(cls, v):
        if v is None or not v.strip():
            return None
        return v

    @classmethod
    def from_arguments(cls, arguments: Optional[Dict[str, Any]]):
        """Parse channel arguments, raising INVALID_ARGS on anything missing or blank"""
        try:
            return cls.model_validate(arguments or {})
        except ValidationError as e:
            fields = [".".join(str(x) for x in err.get("loc", [])) for err in e.errors()]
            raise InvalidArgumentsError(details={"fields": fields})


class CopyToTreeArgs(_CopyArguments):
    tree_uri: str = Field(..., alias="treeUri")

    @field_validator("tree_uri")
    @classmethod
    def tree_uri_not_blank(cls, v):
        if v is None or not v.strip():
            raise ValueError("must not be blank")
        return v


class CopyToDownloadsArgs(_CopyArguments):
    pass


class ChannelRequest(BaseModel):
    """Body of a request on the HTTP channel"""
    arguments: Dict[str, Any] = Field(default_factory=dict)


class ChannelResponse(BaseModel):
    result: Any = None


class ChannelErrorResponse(BaseModel):
    code: str
    message: Optional[str] = None
    details: Any = None
    timestamp: Optional[str] = None
