from pydantic import BaseModel, field_validator


class MNotifyResponse(BaseModel):
    status: str = ""
    code: str = ""
    message: str = ""
    data: dict | list | None = None

    @field_validator("status", "code", "message", mode="before")
    @classmethod
    def _as_text(cls, value):
        # MNotify returns codes as "2000" on some endpoints and 2000 on others
        return "" if value is None else str(value)

    @property
    def ok(self) -> bool:
        return self.status == "success" or self.code == "2000"


class MNotifyBalance(BaseModel):
    balance: float = 0.0
    currency: str = "GHS"
