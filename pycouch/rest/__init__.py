from .app import RestApp
from .router import RestResponse, RestRouter

__all__ = ["RestApp", "RestResponse", "RestRouter"]
