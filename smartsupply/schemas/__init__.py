# smartsupply/schemas/__init__.py
"""Pydantic schemas package"""
from .customer import CustomerPayload

__all__ = ["CustomerPayload"]
