from .binding import Binding

__all__ = ["Binding"]
