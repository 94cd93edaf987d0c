"""
Section editors for the configuration documents.

Every admin page is the same machine: load one document into a draft,
edit the draft locally, write the whole document back on save. Pages with
a list of entities (team members, projects, FAQ items) add a nested
editor for one entity at a time.
"""
import logging
import threading
import time
from collections import deque
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Type

from pydantic import BaseModel, ValidationError

from config_client import ConfigClient, ConfigError
from schemas import (
    DEFAULT_DOCUMENTS,
    DOCUMENT_MODELS,
    Document,
    FAQItem,
    ListEntity,
    Project,
    TeamMember,
)
from uploads import ImageUploadClient, UploadFailed, is_local_image

logger = logging.getLogger(__name__)


class EditorError(Exception):
    pass


class ValidationFailure(EditorError):
    def __init__(self, message: str, fields: Sequence[str] = ()):
        super().__init__(message)
        self.message = message
        self.fields = list(fields)


class SaveInProgress(EditorError):
    pass


class ConfirmationRequired(EditorError):
    pass


class EntityNotFound(EditorError):
    pass


class UnknownField(EditorError):
    pass


class EditorNotReady(EditorError):
    pass


class EditorState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    SAVING = "saving"
    ERROR = "error"


@dataclass
class Notification:
    kind: str  # success | error
    message: str


def field_name(model: BaseModel, name: str) -> str:
    """Map a field name or its camelCase alias to the attribute name."""
    for attr, info in type(model).model_fields.items():
        if name == attr or name == info.alias:
            return attr
    raise UnknownField(f"{type(model).__name__} has no field {name!r}")


def find_local_images(value: Any, path: str = "") -> List[str]:
    """Paths of every string in a wire document that is still a data URI."""
    found = []
    if isinstance(value, dict):
        for key, item in value.items():
            found.extend(find_local_images(item, f"{path}.{key}" if path else key))
    elif isinstance(value, list):
        for index, item in enumerate(value):
            found.extend(find_local_images(item, f"{path}[{index}]"))
    elif isinstance(value, str) and is_local_image(value):
        found.append(path)
    return found


def find_duplicate_ids(value: Any, path: str = "") -> List[str]:
    found = []
    if isinstance(value, dict):
        for key, item in value.items():
            found.extend(find_duplicate_ids(item, f"{path}.{key}" if path else key))
    elif isinstance(value, list):
        seen = set()
        for item in value:
            if isinstance(item, dict) and "id" in item:
                if item["id"] in seen:
                    found.append(f"{path}[id={item['id']}]")
                seen.add(item["id"])
        for index, item in enumerate(value):
            found.extend(find_duplicate_ids(item, f"{path}[{index}]"))
    return found


def validate_document(document: Document) -> None:
    wire = document.to_wire()
    local = find_local_images(wire)
    if local:
        raise ValidationFailure("Please wait for image upload to complete", local)
    duplicates = find_duplicate_ids(wire)
    if duplicates:
        raise ValidationFailure("Duplicate ids in list", duplicates)


def _sentence(text: str) -> str:
    return text[:1].upper() + text[1:]


def _error_fields(error: ValidationError) -> List[str]:
    return [".".join(str(part) for part in err["loc"]) for err in error.errors()]


class SectionEditor:
    """Load / edit / save cycle for one configuration document."""

    def __init__(
        self,
        client: ConfigClient,
        key: str,
        model: Type[Document],
        default: Callable[[], Document],
        validate: Optional[Callable[[Document], None]] = None,
        label: Optional[str] = None,
        protected_fields: Iterable[str] = (),
    ):
        self.client = client
        self.key = key
        self.model = model
        self.default = default
        self.validate = validate
        self.label = label or f"{key} settings"
        self.protected_fields = set(protected_fields)
        self.state = EditorState.LOADING
        self.draft: Optional[Document] = None
        self.error: Optional[str] = None
        self.notifications = deque(maxlen=20)
        self._save_lock = threading.Lock()
        self._load_lock = threading.Lock()

    # Loading

    def load(self) -> EditorState:
        with self._load_lock:
            return self._load()

    def ensure_loaded(self) -> EditorState:
        """Load once; callers arriving during the first load wait for it."""
        with self._load_lock:
            if self.draft is None and self.state == EditorState.LOADING:
                return self._load()
            return self.state

    def _load(self) -> EditorState:
        # Holding the save lock keeps a save from landing on top of a reload.
        if not self._save_lock.acquire(blocking=False):
            raise SaveInProgress(f"{self.label} are being saved")
        try:
            self.state = EditorState.LOADING
            self.error = None
            try:
                value = self.client.fetch_document(self.key)
                if value is None:
                    logger.info("No %s config found, using default config", self.key)
                    draft = self.default()
                else:
                    draft = self.model.model_validate(value)
            except ValidationError as e:
                logger.warning("Stored %s config does not match its schema: %s", self.key, e)
                self.error = f"Failed to load {self.label}: stored document is malformed"
                self.state = EditorState.ERROR
            except ConfigError as e:
                logger.warning("Loading %s failed: %s", self.key, e)
                self.error = f"Failed to load {self.label}: {e}"
                self.state = EditorState.ERROR
            else:
                self.draft = draft
                self.state = EditorState.READY
                self._after_load()
            return self.state
        finally:
            self._save_lock.release()

    def _after_load(self) -> None:
        pass

    def _require_ready(self) -> Document:
        if self.state == EditorState.SAVING:
            raise SaveInProgress(f"{self.label} are being saved")
        if self.state != EditorState.READY or self.draft is None:
            raise EditorNotReady(f"{self.label} are not loaded")
        return self.draft

    # Draft edits, no network

    def resolve(self, path: str) -> BaseModel:
        target: Any = self._require_ready()
        for name in filter(None, path.split(".")):
            if isinstance(target, list):
                match = next((item for item in target if str(getattr(item, "id", None)) == name), None)
                if match is None:
                    raise EntityNotFound(f"No entry {name!r} in {path!r}")
                target = match
                continue
            attr = field_name(target, name)
            if target is self.draft and attr in self.protected_fields:
                raise UnknownField(f"{name} is edited one entry at a time")
            value = getattr(target, attr)
            if not isinstance(value, (BaseModel, list)):
                raise UnknownField(f"{path!r} is not a section")
            target = value
        if isinstance(target, list):
            raise UnknownField(f"{path!r} is a list, not a section")
        return target

    def _apply_changes(self, target: BaseModel, changes: Dict[str, Any], protected: Iterable[str]) -> None:
        protected = set(protected)
        staged = {}
        for name, value in changes.items():
            attr = field_name(target, name)
            if attr in protected or isinstance(getattr(target, attr), BaseModel):
                raise UnknownField(f"{name} cannot be set directly")
            staged[attr] = value
        if not staged:
            return
        try:
            candidate = type(target).model_validate({**target.model_dump(), **staged})
        except ValidationError as e:
            raise ValidationFailure("Invalid value", _error_fields(e)) from e
        for attr in staged:
            setattr(target, attr, getattr(candidate, attr))

    def update(self, path: str, changes: Dict[str, Any]) -> BaseModel:
        """Set scalar fields of the section at ``path`` ("" is the document root)."""
        target = self.resolve(path)
        protected = self.protected_fields if target is self.draft else {"id"}
        self._apply_changes(target, changes, protected)
        return target

    def toggle(self, path: str, field: str = "enabled") -> bool:
        target = self.resolve(path)
        attr = field_name(target, field)
        current = getattr(target, attr)
        if not isinstance(current, bool):
            raise UnknownField(f"{field} is not a flag")
        setattr(target, attr, not current)
        return not current

    def upload_image(
        self,
        uploader: ImageUploadClient,
        path: str,
        field: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        on_progress=None,
    ) -> str:
        target = self.resolve(path)
        return self._upload_into(target, field, uploader, filename, data, content_type, on_progress)

    def _upload_into(self, target, field, uploader, filename, data, content_type, on_progress) -> str:
        attr = field_name(target, field)
        if not isinstance(getattr(target, attr), str):
            raise UnknownField(f"{field} is not an image field")
        try:
            return uploader.upload_into(
                lambda value: setattr(target, attr, value), filename, data, content_type, on_progress
            )
        except UploadFailed as e:
            self.notify("error", f"Failed to upload image: {e}")
            raise

    # Saving

    def notify(self, kind: str, message: str) -> None:
        self.notifications.append(Notification(kind, message))

    def pop_notifications(self) -> List[Notification]:
        items = list(self.notifications)
        self.notifications.clear()
        return items

    def check(self, document: Document) -> None:
        validate_document(document)
        if self.validate is not None:
            self.validate(document)

    def _persist(self, candidate: Document, success_message: str) -> Document:
        if not self._save_lock.acquire(blocking=False):
            logger.info("Refusing concurrent save of %s", self.key)
            raise SaveInProgress(f"{self.label} are already being saved")
        try:
            self.state = EditorState.SAVING
            value = candidate.to_wire()
            try:
                self.client.write_document(self.key, value)
            except ConfigError as e:
                logger.warning("Saving %s failed: %s", self.key, e)
                self.notify("error", f"Failed to save {self.label}: {e}")
                raise
            self.draft = self.model.model_validate(value)
            self.notify("success", success_message)
            return self.draft
        finally:
            self.state = EditorState.READY
            self._save_lock.release()

    def save(self) -> Document:
        draft = self._require_ready()
        try:
            self.check(draft)
        except ValidationFailure as e:
            self.notify("error", e.message)
            raise
        return self._persist(draft.model_copy(deep=True), f"{_sentence(self.label)} saved successfully!")

    def describe(self) -> Dict[str, Any]:
        return {
            "key": self.key,
            "state": self.state.value,
            "error": self.error,
            "draft": self.draft.to_wire() if self.draft is not None else None,
            "notifications": [asdict(n) for n in self.pop_notifications()],
        }


class HomeEditor(SectionEditor):
    def update_content_section(self, section_id: str, changes: Dict[str, Any]) -> BaseModel:
        """Set fields of one content section, addressed by its id."""
        return self.update(f"sections.{section_id}", changes)


class ListEditor(SectionEditor):
    """Section editor whose document also holds a list of entities keyed by id."""

    def __init__(
        self,
        client: ConfigClient,
        key: str,
        model: Type[Document],
        default: Callable[[], Document],
        list_field: str,
        entity_model: Type[ListEntity],
        required_fields: Sequence[str],
        id_strategy: str = "time",
        entity_label: str = "item",
        **kwargs,
    ):
        super().__init__(client, key, model, default, protected_fields={list_field}, **kwargs)
        self.list_field = list_field
        self.entity_model = entity_model
        self.required_fields = tuple(required_fields)
        self.id_strategy = id_strategy
        self.entity_label = entity_label
        self.entity_draft: Optional[ListEntity] = None
        self.is_new = False

    def _after_load(self) -> None:
        self.entity_draft = None
        self.is_new = False

    @property
    def entities(self) -> List[ListEntity]:
        return getattr(self._require_ready(), self.list_field)

    def find(self, entity_id: int) -> ListEntity:
        for entity in self.entities:
            if entity.id == entity_id:
                return entity
        raise EntityNotFound(f"No {self.entity_label} with id {entity_id}")

    def new_id(self) -> int:
        ids = {entity.id for entity in self.entities}
        if self.id_strategy == "max":
            return max(ids, default=0) + 1
        candidate = int(time.time() * 1000)
        while candidate in ids:
            candidate += 1
        return candidate

    def _require_entity(self) -> ListEntity:
        self._require_ready()
        if self.entity_draft is None:
            raise EditorNotReady(f"No {self.entity_label} is being edited")
        return self.entity_draft

    def add_new(self) -> ListEntity:
        self.entity_draft = self.entity_model(id=self.new_id())
        self.is_new = True
        return self.entity_draft

    def edit(self, entity_id: int) -> ListEntity:
        self.entity_draft = self.find(entity_id).model_copy(deep=True)
        self.is_new = False
        return self.entity_draft

    def update_entity(self, changes: Dict[str, Any]) -> ListEntity:
        entity = self._require_entity()
        self._apply_changes(entity, changes, protected={"id"})
        return entity

    def cancel(self) -> None:
        self.entity_draft = None
        self.is_new = False

    def upload_entity_image(
        self,
        uploader: ImageUploadClient,
        field: str,
        filename: str,
        data: bytes,
        content_type: Optional[str] = None,
        on_progress=None,
    ) -> str:
        entity = self._require_entity()
        return self._upload_into(entity, field, uploader, filename, data, content_type, on_progress)

    def validate_entity(self, entity: ListEntity) -> None:
        missing = [name for name in self.required_fields if not str(getattr(entity, name) or "").strip()]
        if missing:
            labels = ", ".join(name.capitalize() for name in self.required_fields)
            raise ValidationFailure(f"Please fill in all fields ({labels})", missing)
        local = [name for name, value in entity if isinstance(value, str) and is_local_image(value)]
        if local:
            raise ValidationFailure(
                "Please wait for image upload to complete. If upload failed, try selecting the image again.",
                local,
            )

    def save_entity(self) -> Document:
        entity = self._require_entity()
        candidate = self.draft.model_copy(deep=True)
        entities = list(getattr(candidate, self.list_field))
        stored = entity.model_copy(deep=True)
        positions = [index for index, item in enumerate(entities) if item.id == stored.id]
        if positions and not self.is_new:
            entities[positions[0]] = stored
        else:
            entities.append(stored)
        setattr(candidate, self.list_field, entities)
        try:
            self.validate_entity(entity)
            self.check(candidate)
        except ValidationFailure as e:
            self.notify("error", e.message)
            raise

        action = "added" if self.is_new else "updated"
        document = self._persist(candidate, f"{_sentence(self.entity_label)} {action} successfully!")
        self.cancel()
        return document

    def delete(self, entity_id: int, confirmed: bool = False) -> Document:
        if not confirmed:
            raise ConfirmationRequired(f"Are you sure you want to delete this {self.entity_label}?")
        self.find(entity_id)
        candidate = self.draft.model_copy(deep=True)
        setattr(
            candidate,
            self.list_field,
            [item for item in getattr(candidate, self.list_field) if item.id != entity_id],
        )
        document = self._persist(candidate, f"{_sentence(self.entity_label)} deleted successfully!")
        if self.entity_draft is not None and self.entity_draft.id == entity_id:
            self.cancel()
        return document

    def describe(self) -> Dict[str, Any]:
        described = super().describe()
        described["entityDraft"] = self.entity_draft.to_wire() if self.entity_draft is not None else None
        described["isNew"] = self.is_new
        return described


def build_editor(key: str, client: ConfigClient) -> SectionEditor:
    model, default = DOCUMENT_MODELS[key], DEFAULT_DOCUMENTS[key]
    if key == "team":
        return ListEditor(
            client, key, model, default,
            list_field="members",
            entity_model=TeamMember,
            required_fields=("name", "title", "bio", "image"),
            entity_label="team member",
            label="team settings",
        )
    if key == "projects":
        return ListEditor(
            client, key, model, default,
            list_field="projects",
            entity_model=Project,
            required_fields=("name", "location", "description", "image"),
            id_strategy="max",
            entity_label="project",
            label="projects",
        )
    if key == "faq":
        return ListEditor(
            client, key, model, default,
            list_field="faq_items",
            entity_model=FAQItem,
            required_fields=("question", "answer", "category"),
            entity_label="FAQ",
            label="FAQ settings",
        )
    if key == "home":
        return HomeEditor(client, key, model, default, label="home settings")
    labels = {"footer": "footer settings", "page_settings": "page settings"}
    return SectionEditor(client, key, model, default, label=labels[key])


class EditorRegistry:
    """One editor per document for the life of the process."""

    def __init__(self, client: ConfigClient):
        self.client = client
        self._editors: Dict[str, SectionEditor] = {}
        self._lock = threading.Lock()

    def get(self, key: str, reload: bool = False) -> SectionEditor:
        if key not in DOCUMENT_MODELS:
            raise KeyError(key)
        with self._lock:
            editor = self._editors.get(key)
            if editor is None:
                editor = self._editors[key] = build_editor(key, self.client)
        if reload:
            editor.load()
        else:
            editor.ensure_loaded()
        return editor
