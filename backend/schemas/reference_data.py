from pydantic import BaseModel


class ReferenceItemCreate(BaseModel):
    name: str

class ReferenceItemUpdate(BaseModel):
    name: str

class ReferenceItem(BaseModel):
    id: str
    name: str
    usage_count: int = 0
