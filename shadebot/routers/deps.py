from functools import lru_cache

from shadebot.services.dispatcher import FlowDispatcher, build_default_services


@lru_cache(maxsize=1)
def get_dispatcher() -> FlowDispatcher:
    return FlowDispatcher(build_default_services())
