"""Request handlers for the flyout endpoints.

Transport-neutral versions of the ``load``, ``save``, ``delete``,
``search`` and ``action`` endpoints. Each handler returns a ``Response``
or an ``ErrorResult``; only configuration mistakes and load failures
raise. ``dispatch`` routes a request by endpoint name through a
``ManagerRegistry`` the way the REST routes do.

Example:
    result = handle_save(manager, "edit_product", 42, {"name": "Mug"})
    payload = result.to_dict()  # {"success": True, "message": "Saved successfully."}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from flyouts.lib.errors import ErrorResult, FlyoutError, LoadError, PersistenceError, ValidationError, is_error
from flyouts.lib.fields import FieldSpec, flatten_fields
from flyouts.lib.form_data import decode_form_pairs
from flyouts.lib.logging import FlyoutLogger
from flyouts.lib.manager import Manager, ManagerRegistry, default_registry
from flyouts.lib.sanitize import sanitize_key, sanitize_text_field
from flyouts.lib.search import parse_id_list

__all__ = [
    "Response",
    "Result",
    "handle_load",
    "handle_save",
    "handle_delete",
    "handle_search",
    "handle_action",
    "dispatch",
    "ENDPOINTS",
]


@dataclass
class Response:
    """Successful handler outcome."""

    success: bool = True
    data: Dict[str, Any] = field(default_factory=dict)
    message: str = ""
    status: int = 200

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.message:
            payload["message"] = self.message
        payload.update(self.data)
        return payload


Result = Union[Response, ErrorResult]


def _logger(manager: Manager, flyout_id: str) -> FlyoutLogger:
    return FlyoutLogger(__name__, manager=manager.prefix, flyout=flyout_id)


def _resolve(manager: Manager, flyout_id: str) -> Union[Dict[str, Any], ErrorResult]:
    config = manager.get_flyout(flyout_id)
    if config is None:
        return ErrorResult("flyout_not_found", f'Flyout "{flyout_id}" not found.', 404)
    if not manager.can_access(flyout_id):
        _logger(manager, flyout_id).warning("Capability check failed for '%s'", config["capability"])
        return ErrorResult("rest_forbidden", "You do not have permission to perform this action.", 403)
    return config


def handle_load(manager: Manager, flyout_id: str, item_id: Any = 0) -> Result:
    """Load a record and render its flyout.

    Raises:
        LoadError: The load callback, or rendering against its data, failed
    """
    config = _resolve(manager, flyout_id)
    if is_error(config):
        return config
    log = _logger(manager, flyout_id)

    data = None
    load = config.get("load")
    if load is not None:
        try:
            data = load(item_id)
        except Exception as exc:
            log.exception("Load callback failed for item %s", item_id)
            raise LoadError(
                "Load callback failed",
                item_id=item_id,
                cause=exc,
                manager=manager.prefix,
                flyout=flyout_id,
            ) from exc

    if is_error(data):
        log.warning("Load returned error %s for item %s", data.code, item_id)
        return data
    if data is False:
        log.warning("Record %s not found", item_id)
        return ErrorResult("flyout_load_failed", "Record not found.", 404)

    try:
        html = manager.build_flyout(config, data, item_id).render()
    except FlyoutError:
        raise
    except Exception as exc:
        log.exception("Rendering failed for item %s", item_id)
        raise LoadError(
            "Could not render the loaded record",
            item_id=item_id,
            cause=exc,
            manager=manager.prefix,
            flyout=flyout_id,
        ) from exc

    log.info("Loaded item %s", item_id)
    return Response(data={"html": html})


def _run_persistence(
    log: FlyoutLogger,
    operation: str,
    callback: Callable[..., Any],
    *args: Any,
) -> Optional[ErrorResult]:
    """Call a save/delete callback; any failure becomes an ErrorResult."""
    try:
        result = callback(*args)
    except Exception as exc:
        log.exception("%s callback raised", operation.capitalize())
        error = PersistenceError(f"{operation.capitalize()} failed.", operation=operation, cause=exc)
        return ErrorResult(f"flyout_{operation}_failed", error.message, 500, {"cause": str(exc)})

    if is_error(result):
        log.warning("%s callback returned error %s", operation.capitalize(), result.code)
        return result
    if result is False:
        log.warning("%s callback reported failure", operation.capitalize())
        return ErrorResult(f"flyout_{operation}_failed", f"{operation.capitalize()} failed.", 500)
    return None


def handle_save(
    manager: Manager,
    flyout_id: str,
    item_id: Any = 0,
    form_data: Union[Mapping[str, Any], Iterable[Any], None] = None,
) -> Result:
    """Sanitize, validate and persist a submission."""
    config = _resolve(manager, flyout_id)
    if is_error(config):
        return config
    log = _logger(manager, flyout_id)

    if config.get("save") is None:
        return ErrorResult("flyout_save_not_configured", "Save not configured for this flyout.", 500)

    raw = form_data if isinstance(form_data, Mapping) else decode_form_pairs(form_data or [])
    sanitized = manager.sanitize(flyout_id, raw)

    validate = config.get("validate")
    if validate is not None:
        try:
            verdict = validate(sanitized)
        except ValidationError as exc:
            log.warning("Validation rejected submission: %s", exc.issues or exc.message)
            return ErrorResult("flyout_validation_failed", exc.message, 422, {"issues": exc.issues})
        if is_error(verdict):
            log.warning("Validation returned error %s", verdict.code)
            return verdict
        if verdict is False:
            log.warning("Validation rejected submission")
            return ErrorResult("flyout_validation_failed", "Validation failed.", 422)

    submitted_id = raw.get("id")
    record_id = item_id
    if isinstance(submitted_id, (str, int)) and sanitize_text_field(submitted_id):
        record_id = sanitize_text_field(submitted_id)
    failure = _run_persistence(log, "save", config["save"], record_id, sanitized)
    if failure is not None:
        return failure

    log.info("Saved item %s", record_id)
    return Response(message="Saved successfully.")


def handle_delete(manager: Manager, flyout_id: str, item_id: Any = 0) -> Result:
    config = _resolve(manager, flyout_id)
    if is_error(config):
        return config
    log = _logger(manager, flyout_id)

    if config.get("delete") is None:
        return ErrorResult("flyout_delete_not_configured", "Delete not configured for this flyout.", 500)

    failure = _run_persistence(log, "delete", config["delete"], item_id)
    if failure is not None:
        return failure

    log.info("Deleted item %s", item_id)
    return Response(message="Deleted successfully.")


def _format_results(result: Any) -> List[Dict[str, str]]:
    """Normalize an id -> label mapping into ``[{"id", "text"}]`` rows."""
    if isinstance(result, Mapping):
        return [{"id": str(key), "text": str(label)} for key, label in result.items()]
    return []


def handle_search(
    manager: Manager,
    flyout_id: str,
    field_key: str,
    term: str = "",
    include: Union[str, Iterable[Any], None] = None,
) -> Result:
    """Search (or hydrate by ids) the options of an ajax_select field."""
    config = _resolve(manager, flyout_id)
    if is_error(config):
        return config
    log = _logger(manager, flyout_id)

    field_key = sanitize_key(field_key)
    spec = manager.find_field(flyout_id, field_key)
    if spec is None:
        return ErrorResult("flyout_field_not_found", f'Field "{field_key}" not found.', 404)

    term = sanitize_text_field(term)
    callback = spec.get("callback")
    legacy = spec.get("search_callback")

    try:
        if callable(callback):
            ids = parse_id_list(include) or None
            if ids:
                term = ""
            result = callback(term, ids)
            if is_error(result):
                return result
            return Response(data={"results": _format_results(result)})

        if callable(legacy):
            result = legacy(term)
            if is_error(result):
                return result
            return Response(data={"results": result})
    except Exception as exc:
        log.exception("Search callback for '%s' failed", field_key)
        return ErrorResult("flyout_search_failed", "Search failed.", 500, {"cause": str(exc)})

    return ErrorResult(
        "flyout_search_no_callback",
        f'No search callback defined for field "{field_key}".',
        500,
    )


def _find_action_callback(fields: Iterable[FieldSpec], action_key: str) -> Optional[Callable[..., Any]]:
    for spec in flatten_fields(fields):
        if spec.type == "notes":
            if action_key == spec.get("add_action", "add_note") and callable(spec.get("add_callback")):
                return spec.get("add_callback")
            if action_key == spec.get("delete_action", "delete_note") and callable(spec.get("delete_callback")):
                return spec.get("delete_callback")
            continue

        if spec.type == "action_buttons":
            items = spec.get("buttons") or []
        elif spec.type == "action_menu":
            items = spec.get("items") or []
        else:
            continue

        for item in items:
            if not isinstance(item, Mapping) or item.get("type") == "separator":
                continue
            if item.get("action") == action_key and callable(item.get("callback")):
                return item["callback"]
    return None


def handle_action(
    manager: Manager,
    flyout_id: str,
    action_key: str,
    item_id: Any = 0,
    params: Optional[Mapping[str, Any]] = None,
) -> Result:
    """Run an action button, action menu or notes callback."""
    config = _resolve(manager, flyout_id)
    if is_error(config):
        return config
    log = _logger(manager, flyout_id)

    action_key = sanitize_key(action_key)
    callback = _find_action_callback(manager.get_fields(flyout_id), action_key)
    if callback is None:
        return ErrorResult("flyout_action_not_found", f'Action "{action_key}" not found.', 404)

    payload = {**(params or {}), "id": item_id, "action_key": action_key}
    try:
        result = callback(payload)
    except Exception as exc:
        log.exception("Action '%s' failed", action_key)
        return ErrorResult("flyout_action_failed", "Action failed.", 500, {"cause": str(exc)})

    if is_error(result):
        return result
    log.info("Action '%s' completed for item %s", action_key, item_id)
    if isinstance(result, Mapping):
        return Response(data=dict(result))
    return Response(message="Action completed successfully.")


ENDPOINTS = ("load", "save", "delete", "search", "action")


def dispatch(
    endpoint: str,
    params: Mapping[str, Any],
    registry: Optional[ManagerRegistry] = None,
) -> Result:
    """Route a request to its handler, resolving the manager by prefix.

    ``params`` carries ``manager`` and ``flyout`` plus the endpoint's own
    arguments (``item_id``, ``form_data``, ``field_key``, ``term``,
    ``include``, ``action_key``).
    """
    registry = registry if registry is not None else default_registry
    prefix = sanitize_key(params.get("manager"))
    manager = registry.get(prefix)
    if manager is None:
        return ErrorResult("flyout_manager_not_found", f'Flyout manager "{prefix}" not found.', 404)

    flyout_id = sanitize_key(params.get("flyout"))
    item_id = params.get("item_id", 0)

    if endpoint == "load":
        return handle_load(manager, flyout_id, item_id)
    if endpoint == "save":
        return handle_save(manager, flyout_id, item_id, params.get("form_data"))
    if endpoint == "delete":
        return handle_delete(manager, flyout_id, item_id)
    if endpoint == "search":
        return handle_search(
            manager,
            flyout_id,
            str(params.get("field_key", "")),
            str(params.get("term", "")),
            params.get("include"),
        )
    if endpoint == "action":
        extra = {k: v for k, v in params.items() if k not in ("manager", "flyout", "item_id", "action_key")}
        return handle_action(manager, flyout_id, str(params.get("action_key", "")), item_id, extra)
    return ErrorResult("rest_no_route", f'No route for endpoint "{endpoint}".', 404)
