from . import config, status

__all__ = ["SectionStore", "HttpWarehouseBackend", "config", "status"]


def __getattr__(name: str):
    if name == "SectionStore":
        from .store import SectionStore  # noqa: WPS433 - lazy import

        return SectionStore
    if name == "HttpWarehouseBackend":
        from .remote import HttpWarehouseBackend  # noqa: WPS433 - lazy import

        return HttpWarehouseBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
