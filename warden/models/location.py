"""Location lookup tables (country → state → city)."""

from sqlalchemy import ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from warden.models.base import Base


class Country(Base):
    __tablename__ = "country"

    name: Mapped[str] = mapped_column(String(120), nullable=False)
    iso_code: Mapped[str | None] = mapped_column(String(3), nullable=True)

    def __repr__(self) -> str:
        return f"<Country {self.id} {self.name}>"


class State(Base):
    __tablename__ = "state"

    country_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("country.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    def __repr__(self) -> str:
        return f"<State {self.id} {self.name} (country {self.country_id})>"


class City(Base):
    __tablename__ = "city"

    state_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("state.id"),
        nullable=False,
        index=True,
    )
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    def __repr__(self) -> str:
        return f"<City {self.id} {self.name} (state {self.state_id})>"
