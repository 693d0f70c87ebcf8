import posixpath

from conceptrepo.config import get_settings

# Placeholder files used to create otherwise empty directories
SENTINEL_NAMES = {".gitkeep", ".keep"}


def normalize_path(path: str) -> str:
    path = path.strip("/")
    if not path or any(part in ("", ".", "..") for part in path.split("/")):
        raise ValueError(f"Invalid path: {path!r}")
    return path


def split_path(path: str) -> tuple[str, str]:
    """Split a path into its directory ('' for the repository root) and file name"""
    directory, file_name = posixpath.split(path)
    return directory, file_name


def index_file_name(index_name: str | None = None) -> str:
    """File name of the index documents, raises ValueError if it would collide with the config file"""
    settings = get_settings()
    file_name = f"{index_name or settings.index_name}.json"
    if file_name == settings.config_file:
        raise ValueError(f"Index name {index_name or settings.index_name!r} is reserved for the repository config")
    return file_name


def index_path(directory: str, index_name: str | None = None) -> str:
    """Location of the index document of a directory"""
    file_name = index_file_name(index_name)
    directory = directory.strip("/")
    return f"{directory}/{file_name}" if directory else file_name


def index_path_for(path: str, index_name: str | None = None) -> str:
    """Location of the index document covering the concept at this path"""
    directory, _ = split_path(path)
    return index_path(directory, index_name)


def reserved_names(index_name: str | None = None) -> set[str]:
    settings = get_settings()
    return {
        f"{settings.index_name}.json",
        f"{index_name or settings.index_name}.json",
        settings.config_file,
    } | SENTINEL_NAMES


def is_indexed(path: str, index_name: str | None = None) -> bool:
    """
    Should this file be kept in its directory index?
    Only concept files are indexed; sentinels, index and config files are not.
    """
    _, file_name = split_path(path)
    if file_name in reserved_names(index_name):
        return False
    return file_name.endswith(get_settings().object_suffix)


def in_directory(path: str, directory: str | None) -> bool:
    """Is path inside directory (at any depth)? None and '' mean the whole repository"""
    if not directory:
        return True
    return path.startswith(directory.strip("/") + "/")
