"""Hierarchy drill-down over ">"-delimited category paths.

All functions here are pure: they take the loaded category list and an
immutable ``NavigatorState`` and return new values. ``reduce`` is the single
entry point for user actions so that clearing deeper levels and backfilling
from a search result happen in one place.
"""

from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from facetstudio.core.config import settings
from facetstudio.models.category import PATH_SEPARATOR

MAX_LEVELS = settings.MAX_CATEGORY_LEVELS
# Changing a level below this one clears every deeper selection
CLEAR_DESCENDANTS_BELOW = 3
# Picking an option at this level arms the auto-reset timer
LEAF_LEVEL = 3


def split_path(path: str) -> List[str]:
    """Split a breadcrumb on ">" and trim each segment."""
    return [part.strip() for part in (path or "").split(">") if part.strip()]


def join_path(segments: Iterable[str]) -> str:
    return PATH_SEPARATOR.join(segments)


def _path_of(category) -> str:
    if isinstance(category, dict):
        return category.get("category_path") or ""
    return category.category_path or ""


def _is_visible(category) -> bool:
    if isinstance(category, dict):
        return category.get("is_visible", True) is not False
    return category.is_visible is not False


def _id_of(category):
    if isinstance(category, dict):
        return category.get("id")
    return category.id


def normalized_path(category) -> str:
    return join_path(split_path(_path_of(category)))


@dataclass(frozen=True)
class NavigatorState:
    """Immutable UI state of the drill-down selector."""

    level_selections: Tuple[str, ...] = ("",) * MAX_LEVELS
    level_searches: Tuple[str, ...] = ("",) * MAX_LEVELS
    open_dropdown: Optional[int] = None
    global_search: str = ""

    def selection(self, level: int) -> str:
        return self.level_selections[level - 1]

    @property
    def selected_prefix(self) -> List[str]:
        """Contiguous run of selected levels starting at level 1."""
        prefix = []
        for value in self.level_selections:
            if not value:
                break
            prefix.append(value)
        return prefix

    @property
    def depth(self) -> int:
        return len(self.selected_prefix)

    @property
    def selected_path(self) -> str:
        return join_path(self.selected_prefix)

    def as_dict(self) -> Dict[int, str]:
        return {i + 1: v for i, v in enumerate(self.level_selections)}


# --- Actions ---------------------------------------------------------------

@dataclass(frozen=True)
class SelectLevel:
    level: int
    value: str


@dataclass(frozen=True)
class SetLevelSearch:
    level: int
    text: str


@dataclass(frozen=True)
class SetGlobalSearch:
    text: str


@dataclass(frozen=True)
class PickSearchResult:
    category_path: str


@dataclass(frozen=True)
class OpenDropdown:
    level: Optional[int]


@dataclass(frozen=True)
class ClearSelections:
    pass


Action = Union[SelectLevel, SetLevelSearch, SetGlobalSearch, PickSearchResult, OpenDropdown, ClearSelections]


def _check_level(level: int) -> None:
    if not 1 <= level <= MAX_LEVELS:
        raise ValueError(f"level must be between 1 and {MAX_LEVELS}, got {level}")


def _set_slot(values: Tuple[str, ...], level: int, value: str) -> Tuple[str, ...]:
    updated = list(values)
    updated[level - 1] = value
    return tuple(updated)


def select_level(state: NavigatorState, level: int, value: str) -> NavigatorState:
    """Set one level; levels below 3 also clear all deeper selections."""
    _check_level(level)
    selections = list(state.level_selections)
    selections[level - 1] = (value or "").strip()
    if level < CLEAR_DESCENDANTS_BELOW:
        for deeper in range(level, MAX_LEVELS):
            selections[deeper] = ""
    return replace(
        state,
        level_selections=tuple(selections),
        level_searches=_set_slot(state.level_searches, level, ""),
        open_dropdown=None,
    )


def backfill_selections(path: str) -> Tuple[str, ...]:
    """Level slots 1..6 filled from a path's segments."""
    segments = split_path(path)[:MAX_LEVELS]
    return tuple(segments + [""] * (MAX_LEVELS - len(segments)))


def reduce(state: NavigatorState, action: Action) -> NavigatorState:
    """Apply one user action and return the next state."""
    if isinstance(action, SelectLevel):
        return select_level(state, action.level, action.value)
    if isinstance(action, SetLevelSearch):
        _check_level(action.level)
        return replace(
            state,
            level_searches=_set_slot(state.level_searches, action.level, action.text),
            open_dropdown=action.level,
        )
    if isinstance(action, SetGlobalSearch):
        return replace(state, global_search=action.text)
    if isinstance(action, PickSearchResult):
        return replace(
            state,
            level_selections=backfill_selections(action.category_path),
            level_searches=("",) * MAX_LEVELS,
            global_search="",
            open_dropdown=None,
        )
    if isinstance(action, OpenDropdown):
        if action.level is not None:
            _check_level(action.level)
        return replace(state, open_dropdown=action.level)
    if isinstance(action, ClearSelections):
        return NavigatorState()
    raise TypeError(f"Unknown navigator action: {action!r}")


# --- Queries ---------------------------------------------------------------

def level_options(
    categories: Sequence,
    selections: Sequence[str],
    level: int,
    filter_text: str = "",
) -> List[str]:
    """Distinct, sorted segment names selectable at ``level``.

    Returns an empty list for level L > 1 unless levels 1..L-1 are all set.
    """
    _check_level(level)
    ancestors = [s for s in list(selections)[: level - 1]]
    if len(ancestors) < level - 1 or any(not s for s in ancestors):
        return []

    ancestor_path = join_path(ancestors)
    options = set()
    for category in categories:
        if not _is_visible(category):
            continue
        segments = split_path(_path_of(category))
        if len(segments) < level:
            continue
        if level > 1:
            path = join_path(segments)
            if not (path == ancestor_path or path.startswith(ancestor_path + PATH_SEPARATOR)):
                continue
        options.add(segments[level - 1])

    needle = (filter_text or "").strip().lower()
    if needle:
        options = {o for o in options if needle in o.lower()}
    return sorted(options)


def global_search(
    categories: Sequence,
    query: str,
    selections: Sequence[str] = (),
    limit: int = settings.GLOBAL_SEARCH_LIMIT,
) -> List:
    """Categories whose full path contains ``query``, within the selected prefix."""
    needle = (query or "").strip().lower()
    if not needle:
        return []

    prefix = []
    for value in selections:
        if not value:
            break
        prefix.append(value)
    prefix_path = join_path(prefix)

    results = []
    for category in categories:
        if not _is_visible(category):
            continue
        path = normalized_path(category)
        if prefix_path and not (path == prefix_path or path.startswith(prefix_path + PATH_SEPARATOR)):
            continue
        if needle in path.lower():
            results.append(category)
            if len(results) >= limit:
                break
    return results


@dataclass
class SelectionResolution:
    """What the current selection points at."""

    path: str
    exact_id: Optional[object] = None
    descendant_ids: List = field(default_factory=list)

    @property
    def needs_confirmation(self) -> bool:
        """No exact match but descendants exist: ask before adding them all."""
        return self.exact_id is None and bool(self.descendant_ids)


def resolve_selection(categories: Sequence, selections: Sequence[str]) -> SelectionResolution:
    prefix = []
    for value in selections:
        if not value:
            break
        prefix.append(value)
    path = join_path(prefix)
    resolution = SelectionResolution(path=path)
    if not path:
        return resolution

    for category in categories:
        if not _is_visible(category):
            continue
        candidate = normalized_path(category)
        if candidate == path:
            resolution.exact_id = _id_of(category)
        elif candidate.startswith(path + PATH_SEPARATOR):
            resolution.descendant_ids.append(_id_of(category))
    return resolution


def truncate_to_depth(path: str, depth: int) -> Tuple[str, int, str]:
    """Re-project a path onto the navigated depth: (path, level, name)."""
    segments = split_path(path)
    if depth > 0:
        segments = segments[:depth]
    if not segments:
        return "", 0, ""
    return join_path(segments), len(segments), segments[-1]
