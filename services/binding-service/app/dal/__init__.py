from .binding_dal import BindingDAL, InMemoryBindingDAL, JsonFileBindingDAL, MongoBindingDAL
from .code_dal import CodeDAL, load_codes_file

__all__ = [
    "BindingDAL",
    "InMemoryBindingDAL",
    "JsonFileBindingDAL",
    "MongoBindingDAL",
    "CodeDAL",
    "load_codes_file",
]
