from .authorizer import Authorizer
from .code_registry import CodeRegistry

__all__ = ["Authorizer", "CodeRegistry"]
