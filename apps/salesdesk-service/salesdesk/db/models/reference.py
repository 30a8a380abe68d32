from sqlalchemy import Column, Integer, Text
from .base import Base


class Product(Base):
    __tablename__ = 'products'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    price = Column(Text, nullable=True)
    description = Column(Text, nullable=True)


class Convenio(Base):
    __tablename__ = 'convenios'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    price = Column(Text, nullable=True)
    description = Column(Text, nullable=True)


class Bank(Base):
    __tablename__ = 'banks'
    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    price = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
