"""
Process-wide transport state.

Connections created without an explicit handle factory take their
handles from the factory installed here. Call global_init() once before
creating such connections and global_cleanup() at shutdown, or wrap the
program in the transport_runtime() context manager. Calls nest: the
factory is removed when the last global_init() is matched by a
global_cleanup().
"""

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from ..exceptions import ConnectionException
from .easy import EasyHandle
from .handle import TransportHandle

logger = logging.getLogger(__name__)

HandleFactory = Callable[[], Optional[TransportHandle]]

_lock = threading.Lock()
_factory: Optional[HandleFactory] = None
_init_count = 0


def global_init(factory: Optional[HandleFactory] = None) -> None:
    """
    Initialize the process-wide transport state.

    Args:
        factory: Callable producing new transport handles
                 (EasyHandle if None). Ignored by nested calls.
    """
    global _factory, _init_count
    with _lock:
        if _init_count == 0:
            _factory = factory or EasyHandle
            logger.debug(f"Transport runtime initialized with {_factory!r}")
        _init_count += 1


def global_cleanup() -> None:
    """Tear down the process-wide transport state once all users are done."""
    global _factory, _init_count
    with _lock:
        if _init_count == 0:
            return
        _init_count -= 1
        if _init_count == 0:
            _factory = None
            logger.debug("Transport runtime cleaned up")


def is_initialized() -> bool:
    """Check if global_init() is in effect."""
    return _init_count > 0


def get_handle_factory() -> HandleFactory:
    """
    Get the installed handle factory.

    Raises:
        ConnectionException: If global_init() has not been called
    """
    factory = _factory
    if factory is None:
        raise ConnectionException("transport runtime is not initialized; call global_init() first")
    return factory


@contextmanager
def transport_runtime(factory: Optional[HandleFactory] = None) -> Iterator[None]:
    """Run a block with the transport runtime initialized."""
    global_init(factory)
    try:
        yield
    finally:
        global_cleanup()
