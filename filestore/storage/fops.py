"""Qiniu fop (persistent file operation) string builders: saveas, mkzip."""
import time
from dataclasses import dataclass, field

from qiniu import entry, urlsafe_base64_encode

# mkzip mode 2 carries the url list inline; longer lists go through an index file (mode 4)
MKZIP_INLINE_LIMIT = 2000


@dataclass
class SaveAs:
    """Target of a fop result. delete_after_days must be >= 1 to take effect."""

    save_bucket: str
    save_key: str = ""
    delete_after_days: int | None = None

    def to_fop(self) -> str:
        if not self.save_bucket:
            raise ValueError("save_bucket is required")
        fop = "saveas/" + entry(self.save_bucket, self.save_key or None)
        if self.delete_after_days is not None and self.delete_after_days > 0:
            fop += f"/deleteAfterDays/{self.delete_after_days}"
        return fop


@dataclass
class MkZipArgs:
    """
    Arguments of a mkzip job.

    urls maps a publicly reachable URL to its name inside the archive
    (empty alias keeps the URL's own file name). Order is preserved.
    """

    encoding: str = ""
    index_file_key: str = ""
    urls: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.index_file_key:
            self.index_file_key = f"mkzip-{time.time_ns()}.txt"

    def _entries(self) -> list[str]:
        out = []
        for url, alias in self.urls.items():
            item = "/url/" + urlsafe_base64_encode(url)
            if alias:
                item += "/alias/" + urlsafe_base64_encode(alias)
            out.append(item)
        return out

    def urls_str(self) -> str:
        return "".join(self._entries())

    def index_lines(self) -> str:
        """Index file body: one /url/.../alias/... entry per line."""
        return "\n".join(self._entries())

    @property
    def mode(self) -> int:
        return 2 if len(self.urls_str()) <= MKZIP_INLINE_LIMIT else 4

    def to_fop(self) -> str:
        mode = self.mode
        fop = f"mkzip/{mode}"
        if self.encoding:
            fop += "/encoding/" + urlsafe_base64_encode(self.encoding)
        if mode == 2:
            fop += self.urls_str()
        return fop


@dataclass
class ZipOptions:
    save_as: SaveAs | None = None
    pipeline: str = ""
    notify_url: str = ""
    force: bool = True
    wait: bool = False
    poll_interval: float = 0.5
    wait_timeout: float = 300.0


@dataclass
class PrefopResult:
    """Status of a persistent job. code: 0 done, 1 waiting, 2 running, 3 failed, 4 callback failed."""

    id: str
    code: int
    desc: str = ""
    items: list[dict] = field(default_factory=list)
