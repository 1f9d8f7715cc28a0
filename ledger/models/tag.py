"""
filename: tag.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definition of the tag model and its link to transactions.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table, UniqueConstraint

from ledger.database import Base


class Tag(Base):
    __tablename__ = "tag"
    __table_args__ = (UniqueConstraint("user_id", "name"),)
    id = Column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
        doc="Unique identifier of the tag entry",
    )
    name = Column(String(255), doc="Label of the tag entry")
    user_id = Column(Integer, nullable=False, index=True, doc="Owner of the tag entry")
    active = Column(Boolean, nullable=False, default=True, doc="Whether the tag is in use")


# Many-to-many join rows between transactions and tags, no attributes of their own
transaction_tag = Table(
    "transaction_tag",
    Base.metadata,
    Column("transaction_id", Integer, ForeignKey("transaction.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tag.id"), primary_key=True),
)
