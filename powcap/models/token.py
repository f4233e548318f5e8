from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from powcap.database import Base


class TokenRecord(Base):
    """
    An issued verification token.

    ``key`` is ``"<id>:<sha256(secret)>"``; the raw secret is never stored, so
    a leaked table cannot be replayed against the validator.
    """

    __tablename__ = "tokens"

    key: Mapped[str] = mapped_column(String(96), primary_key=True)
    expires: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
