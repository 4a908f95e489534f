from pydantic import BaseModel


class EmailJob(BaseModel):
    purchase_id: int
    user_id: int
    email: str
    type: str
