from sqlalchemy import BigInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from powcap.database import Base


class ChallengeRecord(Base):
    """
    A pending proof-of-work challenge.

    Only the seed token and the puzzle parameters are kept. The puzzles are
    re-derived from the token when the challenge is redeemed.
    """

    __tablename__ = "challenges"

    token: Mapped[str] = mapped_column(String(64), primary_key=True)
    # JSON-encoded {"c": count, "s": size, "d": difficulty}
    data: Mapped[str] = mapped_column(Text, nullable=False)
    expires: Mapped[int] = mapped_column(BigInteger, index=True, nullable=False)
