"""File system listing, search and classification records."""

from __future__ import annotations

from enum import Enum
from pathlib import PurePosixPath

from pydantic import BaseModel, ConfigDict, Field


class FileCategory(str, Enum):
    """Coarse kind of file, judged by its extension."""

    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"
    ARCHIVE = "archive"
    APK = "apk"
    CODE = "code"
    OTHER = "other"


_EXTENSION_CATEGORIES = {
    FileCategory.IMAGE: ("jpg", "jpeg", "png", "gif", "bmp", "webp", "heic"),
    FileCategory.VIDEO: ("mp4", "mkv", "avi", "mov", "webm", "3gp"),
    FileCategory.AUDIO: ("mp3", "wav", "ogg", "flac", "aac", "m4a"),
    FileCategory.DOCUMENT: ("pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt"),
    FileCategory.ARCHIVE: ("zip", "rar", "7z", "tar", "gz", "bz2"),
    FileCategory.APK: ("apk",),
    FileCategory.CODE: (
        "rs", "js", "ts", "py", "java", "kt", "cpp", "c", "h",
        "html", "css", "json", "xml", "yaml", "yml", "toml",
    ),
}
_CATEGORY_BY_EXTENSION = {
    extension: category
    for category, extensions in _EXTENSION_CATEGORIES.items()
    for extension in extensions
}
_CATEGORY_MIME_TYPES = {
    FileCategory.IMAGE: "image/jpeg",
    FileCategory.VIDEO: "video/mp4",
    FileCategory.AUDIO: "audio/mpeg",
    FileCategory.DOCUMENT: "application/pdf",
    FileCategory.ARCHIVE: "application/zip",
    FileCategory.APK: "application/vnd.android.package-archive",
    FileCategory.CODE: "text/plain",
    FileCategory.OTHER: "application/octet-stream",
}


class FileType(BaseModel):
    """Category and representative MIME type of a file name.

    The MIME type stands for the whole category (every image is reported as
    ``image/jpeg``); it is a hint for viewers, not a content sniff.
    """

    model_config = ConfigDict(frozen=True)

    extension: str
    category: FileCategory
    mime_type: str

    @classmethod
    def from_path(cls, path: str) -> FileType:
        """Classify a path by its lowercased extension.

        Names without an extension, and hidden files such as ``.nomedia``,
        fall into OTHER with an empty extension.
        """
        extension = PurePosixPath(path).suffix.lstrip(".").lower()
        category = _CATEGORY_BY_EXTENSION.get(extension, FileCategory.OTHER)
        return cls(
            extension=extension,
            category=category,
            mime_type=_CATEGORY_MIME_TYPES[category],
        )


class FileInfo(BaseModel):
    """One entry of an ``ls -la`` listing."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    size: int = Field(default=0, ge=0)
    permissions: str
    is_directory: bool = False
    is_symlink: bool = False
    modified: int | None = None
    owner: str | None = None
    group: str | None = None

    @property
    def file_type(self) -> FileType:
        return FileType.from_path(self.name)


class DirectoryListing(BaseModel):
    """A directory's entries with aggregate counts.

    ``total_files + total_dirs == len(files)`` and ``total_size`` is the sum
    of the sizes of non-directory entries.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    parent_path: str | None = None
    files: tuple[FileInfo, ...] = ()
    total_files: int = 0
    total_dirs: int = 0
    total_size: int = 0


class FileSearchResult(BaseModel):
    """A path matched by a name search. Directories report size 0."""

    model_config = ConfigDict(frozen=True)

    name: str
    path: str
    size: int = Field(default=0, ge=0)
    is_directory: bool = False

    @property
    def file_type(self) -> FileType:
        return FileType.from_path(self.name)
