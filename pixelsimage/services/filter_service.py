import logging
from typing import Sequence, Union

from ..exceptions import UnknownFilterError
from ..models.pixel_buffer import PixelBuffer
from ..repositories.filter_repository import FilterRegistry

logger = logging.getLogger(__name__)


class FilterService:
    """
    Runs named filters from a registry over a buffer, in order.

    Not transactional: when a token is unknown the chain stops there and the
    filters already run stay applied. Work on buffer.copy() and swap it in
    on success if all-or-nothing is needed.
    """

    def __init__(self, registry: FilterRegistry):
        self.registry = registry

    def apply_filters(self, buffer: PixelBuffer, names: Union[str, Sequence[str]]) -> PixelBuffer:
        tokens = [names] if isinstance(names, str) else list(names)

        for token in tokens:
            fn = self.registry.get(token)
            if fn is None:
                logger.warning(f"Unknown filter {token!r}; stopping chain")
                raise UnknownFilterError(token)

            result = fn(buffer)
            if not isinstance(result, PixelBuffer):
                raise TypeError(f"Filter {token!r} returned {type(result).__name__}, expected PixelBuffer")
            # The caller's object must reflect every step, even if a later one fails.
            buffer.replace(result)
            logger.debug(f"Applied filter {token!r} to {buffer.width}x{buffer.height} buffer")

        return buffer
