"""Shared request helpers for route modules."""

from typing import Annotated

from fastapi import Header

Caller = Annotated[str, Header(alias="X-Caller", description="Transaction sender address")]
