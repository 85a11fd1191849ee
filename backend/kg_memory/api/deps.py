"""Shared FastAPI dependencies."""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from kg_memory.config import get_settings
from kg_memory.services.directive_service import DirectiveService, build_directive_service


@lru_cache
def get_directive_service() -> DirectiveService:
    """Process-wide service, built on first use."""
    return build_directive_service(get_settings())


DirectiveServiceDep = Annotated[DirectiveService, Depends(get_directive_service)]
