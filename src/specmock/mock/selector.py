"""
Specmock Response Selector

Picks the response definition (status code) and media type to honor for a
matched operation.

Status selection order:
1. Exact match for a requested status (``?status=404``)
2. Lowest declared 2xx status
3. A ``2XX`` range entry (served as 200)
4. The ``default`` entry
5. NoResponseDefined

Media type selection follows the Accept header preference order, prefers
JSON when the client expresses no preference, and falls back to JSON when
nothing acceptable is declared.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from ..common.errors import NoResponseDefined, NotAcceptable
from ..schema.model import Operation, ResponseDefinition, Schema


JSON_MEDIA_TYPE = 'application/json'


@dataclass
class ResponseSelection:
    """Chosen response for one request."""

    status_code: int
    response: ResponseDefinition
    media_type: Optional[str] = None
    status_key: str = ''

    @property
    def schema(self) -> Optional[Schema]:
        if self.media_type is None:
            return None
        return self.response.content.get(self.media_type)

    @property
    def has_body(self) -> bool:
        return self.media_type is not None


@dataclass(frozen=True)
class MediaRange:
    """One entry of an Accept header."""

    type: str
    subtype: str
    quality: float = 1.0

    @property
    def is_wildcard(self) -> bool:
        return self.type == '*' and self.subtype == '*'

    def matches(self, media_type: str) -> bool:
        main, _, sub = media_type.split(';', 1)[0].strip().lower().partition('/')
        if main == '*':
            return True
        if self.type not in ('*', main):
            return False
        return self.subtype in ('*', sub) or sub == '*'

    def __str__(self) -> str:
        return f"{self.type}/{self.subtype}"


def parse_accept(header: Optional[str]) -> List[MediaRange]:
    """
    Parse an Accept header into media ranges in preference order.

    Entries with q=0 are dropped; ties keep header order.
    """
    if not header:
        return []

    ranges = []
    for position, entry in enumerate(header.split(',')):
        entry = entry.strip()
        if not entry:
            continue
        media, *params = [p.strip() for p in entry.split(';')]
        quality = 1.0
        for param in params:
            key, _, value = param.partition('=')
            if key.strip().lower() == 'q':
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue
        main, _, sub = media.lower().partition('/')
        ranges.append((position, MediaRange(main or '*', sub or '*', quality)))

    # Higher quality first, more specific first, then header order
    ranges.sort(key=lambda item: (-item[1].quality, _specificity(item[1]), item[0]))
    return [media_range for _, media_range in ranges]


def _specificity(media_range: MediaRange) -> int:
    if media_range.type == '*':
        return 2
    if media_range.subtype == '*':
        return 1
    return 0


def is_json(media_type: str) -> bool:
    base = media_type.split(';', 1)[0].strip().lower()
    return base == JSON_MEDIA_TYPE or base.endswith('+json')


class ResponseSelector:
    """
    Chooses status code and media type for an operation.

    Example:
        selector = ResponseSelector()
        selection = selector.select(match.operation, None, parse_accept('application/json'))
        print(selection.status_code, selection.media_type)
    """

    def select(
        self,
        operation: Operation,
        requested_status: Optional[Union[str, int]] = None,
        accepted_media_types: Optional[List[MediaRange]] = None
    ) -> ResponseSelection:
        """
        Select the response definition and media type.

        Args:
            operation: Matched operation
            requested_status: Caller-requested status code (or 'default')
            accepted_media_types: Parsed Accept header, in preference order

        Returns:
            ResponseSelection

        Raises:
            NoResponseDefined: The operation declares no usable response
            NotAcceptable: No declared media type is acceptable and no JSON exists
        """
        status_code, key = self.select_status(operation, requested_status)
        response = operation.responses[key]
        media_type = self.select_media_type(response, accepted_media_types or [])
        return ResponseSelection(
            status_code=status_code,
            response=response,
            media_type=media_type,
            status_key=key
        )

    def select_status(
        self,
        operation: Operation,
        requested_status: Optional[Union[str, int]] = None
    ) -> Tuple[int, str]:
        """Return (status code to send, response key)."""
        responses = operation.responses
        requested = str(requested_status).strip() if requested_status is not None else None

        if requested and requested in responses:
            if requested == 'default':
                return 200, requested
            if requested.isdigit():
                return int(requested), requested

        success = sorted(
            int(code) for code in responses
            if code.isdigit() and 200 <= int(code) < 300
        )
        if success:
            return success[0], str(success[0])

        for key in responses:
            if key.upper() == '2XX':
                return 200, key

        if 'default' in responses:
            if requested and requested.isdigit():
                return int(requested), 'default'
            return 200, 'default'

        raise NoResponseDefined(operation.display_name)

    def select_media_type(
        self,
        response: ResponseDefinition,
        accepted: List[MediaRange]
    ) -> Optional[str]:
        """Return the negotiated media type, or None for a bodiless response."""
        available = response.media_types
        if not available:
            return None

        json_type = self._preferred_json(available)

        if not accepted or accepted[0].is_wildcard:
            return json_type or available[0]

        for media_range in accepted:
            if media_range.is_wildcard:
                return json_type or available[0]
            candidates = [m for m in available if media_range.matches(m)]
            if candidates:
                json_candidates = [m for m in candidates if is_json(m)]
                return (json_candidates or candidates)[0]

        if json_type is not None:
            return json_type

        raise NotAcceptable([str(m) for m in accepted], available)

    def _preferred_json(self, available: List[str]) -> Optional[str]:
        for media_type in available:
            if media_type.split(';', 1)[0].strip().lower() == JSON_MEDIA_TYPE:
                return media_type
        for media_type in available:
            if is_json(media_type):
                return media_type
        return None
