from .params import normalize_view_args, split_callback

__all__ = ["normalize_view_args", "split_callback"]
