from pydantic import BaseModel

class EmailMessage(BaseModel):
    """Outgoing email"""
    to: str
    subject: str
    html: str
