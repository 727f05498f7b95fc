from typing import Annotated, Any, Dict, Type, TypeVar
from pydantic import BaseModel, BeforeValidator, Field, ConfigDict
from pydantic.alias_generators import to_camel
from bson import ObjectId

# Helper to handle ObjectId as string
PyObjectId = Annotated[str, BeforeValidator(str)]

T = TypeVar("T", bound="MongoModel")

class MongoModel(BaseModel):
    """
    Base model for locally stored documents (access state, audit trail)
    with _id handling and serialization helpers.
    """
    id: PyObjectId | None = Field(default=None, alias="_id")
    
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        json_encoders={
            ObjectId: str
        }
    )

    @classmethod
    def from_mongo(cls: Type[T], data: Dict[str, Any]) -> T:
        """Convert MongoDB document to Pydantic model."""
        if not data:
            return None
        id = data.pop("_id", None)
        return cls(id=id, **data)

    def to_mongo(self, exclude_none: bool = False) -> Dict[str, Any]:
        """Convert Pydantic model to MongoDB document."""
        data = self.model_dump(by_alias=True, exclude_none=exclude_none)
        if data.get("_id") is None:
            data.pop("_id", None)
        return data

class ApiModel(BaseModel):
    """
    Base model for records exchanged with the remote back-office API.
    Fields are snake_case in Python and camelCase on the wire.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self, exclude_none: bool = True) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=exclude_none, mode="json")
