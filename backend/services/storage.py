import json
import logging
import os
import shutil
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path

from schemas.dto import Item, SavedList, ScannedItem

logger = logging.getLogger(__name__)

LISTS_FILE = "lists.json"
ITEMS_FILE = "items.json"


def _now_ms() -> str:
    return str(int(time.time() * 1000))


def _scan_id() -> str:
    return f"{_now_ms()}_{uuid.uuid4().hex[:6]}"


class _JsonArrayFile:
    """A JSON file holding one array. Reads are best-effort, writes are not."""

    def __init__(self, path: Path, indent=None):
        self.path = Path(path)
        self.indent = indent

    def read(self) -> list:
        if not self.path.exists():
            return []
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Failed to load %s: %s", self.path, e)
            return []
        if not isinstance(data, list):
            logger.error("Ignoring %s: expected a JSON array", self.path)
            return []
        return data

    def write(self, records: list):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(records, indent=self.indent, ensure_ascii=False), encoding="utf-8")


class ListStore:
    """Saved lists, kept as one JSON array in <data_dir>/lists.json."""

    def __init__(self, data_dir):
        self.file = _JsonArrayFile(Path(data_dir) / LISTS_FILE, indent=2)

    def all(self) -> list[SavedList]:
        lists = []
        for rec in self.file.read():
            try:
                lists.append(SavedList.model_validate(rec))
            except ValueError as e:
                logger.warning("Skipping malformed saved list %r: %s", rec.get("id") if isinstance(rec, dict) else rec, e)
        return lists

    def get(self, list_id: str):
        return next((l for l in self.all() if l.id == list_id), None)

    def save(self, name: str, description: str = "", items=()) -> SavedList:
        name = (name or "").strip()
        if not name:
            raise ValueError("List name is required.")
        new = SavedList(
            id=_now_ms(),
            name=name,
            description=(description or "").strip(),
            timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            items=[i if isinstance(i, Item) else Item.model_validate(i) for i in items],
        )
        existing = self.file.read()
        existing.append(new.model_dump())
        self.file.write(existing)
        logger.info("Saved list %s (%s) with %d items", new.id, new.name, len(new.items))
        return new

    def delete(self, list_id: str) -> bool:
        existing = self.file.read()
        kept = [rec for rec in existing if not (isinstance(rec, dict) and rec.get("id") == list_id)]
        if len(kept) == len(existing):
            return False
        self.file.write(kept)
        return True


class ScanStore:
    """The in-progress scan batch: <data_dir>/items.json plus the copied photos."""

    def __init__(self, data_dir):
        self.data_dir = Path(data_dir)
        self.file = _JsonArrayFile(self.data_dir / ITEMS_FILE)

    def load(self) -> list[ScannedItem]:
        items = []
        for rec in self.file.read():
            try:
                items.append(ScannedItem.model_validate(rec))
            except ValueError as e:
                logger.warning("Skipping malformed scanned item: %s", e)
        return items

    def save(self, items):
        self.file.write([i.model_dump() if isinstance(i, ScannedItem) else i for i in items])

    def save_photo(self, src) -> str:
        """Copy a captured photo (path or readable stream) into the data folder; returns the new path."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        dest = self.data_dir / f"scan_{_scan_id()}.jpg"
        if hasattr(src, "read"):
            with open(dest, "wb") as out:
                shutil.copyfileobj(src, out)
        else:
            shutil.copyfile(src, dest)
        return str(dest)

    def add(self, photo_path: str, name: str = "", description: str = "") -> ScannedItem:
        item = ScannedItem(id=_scan_id(), uri=photo_path, name=name, description=description)
        items = self.load()
        items.append(item)
        self.save(items)
        return item

    def clear(self) -> int:
        items = self.load()
        root = self.data_dir.resolve()
        for it in items:
            photo = Path(it.uri).resolve()
            if root not in photo.parents:
                logger.warning("Not deleting %s: outside %s", photo, root)
                continue
            try:
                os.remove(photo)
            except FileNotFoundError:
                pass
        self.save([])
        return len(items)
