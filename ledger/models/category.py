"""
filename: category.py
author: Valentin Piombo
email: valenp97@gmail.com
description: Module for the definition of the category and subcategory models.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String

from ledger.database import Base


class Category(Base):
    __tablename__ = "category"
    id = Column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
        doc="Unique identifier of the category entry",
    )
    name = Column(String(255), doc="Title or name of the category entry")
    user_id = Column(Integer, nullable=False, index=True, doc="Owner of the category entry")
    active = Column(Boolean, nullable=False, default=True, doc="Whether the category is in use")


class Subcategory(Base):
    __tablename__ = "subcategory"
    id = Column(
        Integer,
        primary_key=True,
        index=True,
        autoincrement=True,
        doc="Unique identifier of the subcategory entry",
    )
    name = Column(String(255), doc="Title or name of the subcategory entry")
    category_id = Column(
        Integer,
        ForeignKey("category.id"),
        nullable=False,
        doc="Foreign key link to the parent category",
    )
    active = Column(Boolean, nullable=False, default=True, doc="Whether the subcategory is in use")
