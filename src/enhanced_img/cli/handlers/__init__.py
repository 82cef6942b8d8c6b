from .transform import handle_transform, _transform_single_file, _print_batch_summary

__all__ = [
  "handle_transform",
]
