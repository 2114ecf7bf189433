from sqlmodel import Field, SQLModel


class ServiceBase(SQLModel):
    title: str
    capacity: int = 1  # max simultaneous occupants per slot
    price_60: int
    price_30: int | None = None
    previous_price_60: int | None = None
    previous_price_30: int | None = None
    is_active: bool = True


class Service(ServiceBase, table=True):
    __tablename__ = "services"
    id: int | None = Field(default=None, primary_key=True)


class ServicePublic(ServiceBase):
    id: int
