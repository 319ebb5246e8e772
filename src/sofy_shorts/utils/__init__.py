from sofy_shorts.utils.file_utils import unique_filename, write_atomically, write_placeholder

__all__ = ["write_atomically", "unique_filename", "write_placeholder"]
