from .registry import available_sources, get_source, register
from .google_sheet import GoogleSheetSource
from .local_file import LocalFileSource

register("google_sheet", GoogleSheetSource)
register("file", LocalFileSource)

__all__ = ["available_sources", "get_source", "register", "GoogleSheetSource", "LocalFileSource"]
