"""Helpers around the `evdash_qt_pm` plugin manager."""

import logging
import uuid
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

if TYPE_CHECKING:
    from pluggy._hooks import _F

logger = logging.getLogger(__name__)

HookResults = Tuple[Dict[str, Any], Dict[str, Exception]]


def func_plugin(
    _func: Optional["_F"] = None,
    *,
    plugin_name: Optional[str] = None,
    specname: Optional[str] = None,
) -> Callable:
    """Register a single function as the implementation of a hook.

    Works with or without arguments:

        @func_plugin
        def transport_failure(context, failure):
            if failure.is_auth_expired:
                context.data["session"].logout()

        @func_plugin(specname="data_source_created")
        def count_tables(data_source):
            ...

    The decorated function gains a `plugin_name` attribute and an
    `unregister()` function.

    Args:
        plugin_name: Unique name of the plugin; generated if missing.
        specname: The hook to implement; defaults to the function name.

    Raises:
        ValueError: there is no hook with that name.
    """
    from evdash_qt.plugins import evdash_qt_pm, hook_impl

    def decorator(func: "_F") -> "_F":
        hook_name = specname or func.__name__
        if getattr(evdash_qt_pm.hook, hook_name, None) is None:
            raise ValueError(f"There is no `{hook_name}` hook")

        name = plugin_name or (
            f"{func.__module__}.{func.__name__}.{uuid.uuid4().hex}"
        )

        # Implementations receive the hook arguments as keywords; see
        # `safe_hook_call`.
        class FuncPluginImpl:
            @hook_impl(specname=hook_name)
            def bridge(*args, **kwargs):
                return func(*args, **kwargs)

        evdash_qt_pm.register(FuncPluginImpl, name=name)
        logger.debug("Registered %s for the %s hook", name, hook_name)

        def unregister() -> None:
            evdash_qt_pm.unregister(name=name)

        func.plugin_name = name  # type: ignore[attr-defined]
        func.unregister = unregister  # type: ignore[attr-defined]
        return func

    if _func is None:
        return decorator
    return decorator(_func)


def safe_hook_call(hook_caller, *args, **kwargs) -> HookResults:
    """Call every implementation of a hook; one failing plugin does not
    stop the others, nor the caller.

    Example:
        results, errors = safe_hook_call(
            evdash_qt_pm.hook.transport_failure,
            context=context,
            failure=failure,
        )

    Returns:
        The values returned by the implementations and the exceptions they
        raised, both keyed by plugin name.
    """
    results: Dict[str, Any] = {}
    errors: Dict[str, Exception] = {}

    get_impls = getattr(hook_caller, "get_hookimpls", None)
    if get_impls is None:
        logger.debug("Not a hook: %r", hook_caller)
        return results, errors

    hook_name = getattr(hook_caller, "name", "?")
    for impl in get_impls():
        try:
            results[impl.plugin_name] = impl.function(*args, **kwargs)
        except Exception as e:
            errors[impl.plugin_name] = e
            logger.error(
                "Plugin %s failed in the %s hook",
                impl.plugin_name,
                hook_name,
                exc_info=True,
            )
    return results, errors
