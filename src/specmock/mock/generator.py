"""
Specmock Value Generator

Schema-driven mock value generation for mock server responses.

Features:
- Declared examples take precedence over synthesis
- Lazy reference resolution with cycle detection
- allOf merging, oneOf/anyOf single-branch selection
- Format-aware strings (email, uuid, date, date-time, ...) via Faker
- Pattern-matching strings, bounded numbers, enums
- Generator-local, seedable randomness for reproducible output
"""

import base64
import copy
import logging
import math
import random
import string
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from faker import Faker

from ..common.config import GenerationConfig
from ..schema.model import (
    ArraySchema,
    CompositeSchema,
    ObjectSchema,
    PrimitiveSchema,
    ReferenceSchema,
    Schema,
    SpecificationDocument,
)
from .patterns import PatternError, PatternSynthesizer


logger = logging.getLogger("specmock.generator")

ALPHANUMERIC = string.ascii_letters + string.digits

# Property-name fragments mapped to Faker providers for plain strings
NAME_HINTS: Tuple[Tuple[str, str], ...] = (
    ('email', 'email'),
    ('firstname', 'first_name'),
    ('lastname', 'last_name'),
    ('username', 'user_name'),
    ('fullname', 'name'),
    ('name', 'name'),
    ('phone', 'phone_number'),
    ('street', 'street_address'),
    ('address', 'address'),
    ('city', 'city'),
    ('country', 'country'),
    ('zip', 'postcode'),
    ('postcode', 'postcode'),
    ('company', 'company'),
    ('url', 'url'),
    ('website', 'url'),
    ('description', 'sentence'),
    ('title', 'sentence'),
)


@dataclass(frozen=True)
class GenerationContext:
    """
    Per-call generation state threaded through the recursion.

    Attributes:
        depth: Current nesting depth
        visiting: Reference names on the active resolution path
        field_name: Name of the property being generated, if any
    """

    depth: int = 0
    visiting: Tuple[str, ...] = ()
    field_name: Optional[str] = None

    def child(self, field_name: Optional[str] = None) -> 'GenerationContext':
        return GenerationContext(self.depth + 1, self.visiting, field_name)

    def entering(self, ref: str) -> 'GenerationContext':
        return GenerationContext(self.depth + 1, self.visiting + (ref,), self.field_name)


class ValueGenerator:
    """
    Schema-driven mock value generator.

    Each instance owns its random source, so concurrent requests never share
    state; create one per request. Passing a seed makes output reproducible.

    Example:
        generator = ValueGenerator(document, GenerationConfig(), seed=42)
        body = generator.generate(selection.schema)
    """

    def __init__(
        self,
        document: Optional[SpecificationDocument] = None,
        config: Optional[GenerationConfig] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize value generator.

        Args:
            document: Document whose named schemas references resolve against
            config: Generation knobs (defaults to GenerationConfig())
            seed: Seed for this generator's random source (overrides config.seed)
        """
        self.document = document
        self.config = config or GenerationConfig()
        if seed is None:
            seed = self.config.seed
        self.rng = random.Random(seed)
        self.patterns = PatternSynthesizer(self.rng)
        self._faker_seed = self.rng.getrandbits(32)
        self._faker: Optional[Faker] = None
        self._formats = self._format_handlers()

    @property
    def faker(self) -> Faker:
        """Generator-local Faker instance, created on first use."""
        if self._faker is None:
            self._faker = Faker(self.config.faker_locale)
            self._faker.seed_instance(self._faker_seed)
        return self._faker

    def generate(self, schema: Optional[Schema], context: Optional[GenerationContext] = None) -> Any:
        """
        Generate a mock value for a schema.

        Never raises: a failure anywhere below yields None for that value.

        Args:
            schema: Schema to generate for (None yields None)
            context: Optional starting context

        Returns:
            JSON-compatible value
        """
        return self._generate_field(schema, context or GenerationContext())

    def _generate_field(self, schema: Optional[Schema], context: GenerationContext) -> Any:
        try:
            return self._generate(schema, context)
        except Exception as e:
            logger.debug(f"Generation failed for field {context.field_name!r}: {e}")
            return None

    def _generate(self, schema: Optional[Schema], context: GenerationContext) -> Any:
        if schema is None:
            return None

        if context.depth > self.config.max_depth:
            logger.debug(f"Max depth {self.config.max_depth} reached at field {context.field_name!r}")
            return None

        if self.config.use_examples and schema.has_example:
            return copy.deepcopy(schema.example)

        if isinstance(schema, ReferenceSchema):
            return self._generate_reference(schema, context)
        if isinstance(schema, CompositeSchema):
            return self._generate_composite(schema, context)
        if isinstance(schema, ObjectSchema):
            return self._generate_object(schema, context)
        if isinstance(schema, ArraySchema):
            return self._generate_array(schema, context)
        if isinstance(schema, PrimitiveSchema):
            return self._generate_primitive(schema, context)

        raise TypeError(f"Unknown schema variant: {type(schema).__name__}")

    # References and composition

    def _resolve(self, ref: str) -> Optional[Schema]:
        if self.document is None:
            return None
        return self.document.get_schema(ref)

    def _generate_reference(self, schema: ReferenceSchema, context: GenerationContext) -> Any:
        if schema.ref in context.visiting:
            logger.debug(f"Reference cycle on {schema.ref!r}, emitting null")
            return None

        target = self._resolve(schema.ref)
        if target is None:
            logger.warning(f"Unresolvable schema reference: {schema.ref}")
            return None

        return self._generate(target, context.entering(schema.ref))

    def _generate_composite(self, schema: CompositeSchema, context: GenerationContext) -> Any:
        if schema.kind == 'allOf':
            branches = list(schema.schemas)
            if schema.extra is not None:
                branches.append(schema.extra)
            return merge_values([self._generate_field(b, context.child(context.field_name)) for b in branches])

        if not schema.schemas:
            return None

        branch = self.rng.choice(schema.schemas)
        value = self._generate_field(branch, context.child(context.field_name))
        if schema.extra is not None:
            value = merge_values([self._generate_field(schema.extra, context.child(context.field_name)), value])
        return value

    # Containers

    def _generate_object(self, schema: ObjectSchema, context: GenerationContext) -> Dict[str, Any]:
        result: Dict[str, Any] = {}
        probability = self.config.optional_property_probability

        for name, prop in schema.properties.items():
            if name not in schema.required and probability < 1.0 and self.rng.random() >= probability:
                continue
            result[name] = self._generate_field(prop, context.child(name))

        additional = schema.additional_properties
        if additional is not None and additional is not False:
            value_schema = additional if isinstance(additional, Schema) else PrimitiveSchema()
            for _ in range(self.config.additional_properties_count):
                key = self._additional_key(result)
                result[key] = self._generate_field(value_schema, context.child(key))

        return result

    def _additional_key(self, existing: Dict[str, Any]) -> str:
        for _ in range(10):
            key = f"prop{self.faker.word().capitalize()}"
            if key not in existing:
                return key
        return f"prop{len(existing)}"

    def _generate_array(self, schema: ArraySchema, context: GenerationContext) -> List[Any]:
        items = schema.items or PrimitiveSchema()
        low = schema.min_items or 0
        count = array_length(self.config.default_array_length, schema.min_items, schema.max_items)

        # Self-referential items on the active path: stop the tree here
        if isinstance(items, ReferenceSchema) and items.ref in context.visiting:
            if low == 0:
                return []
            count = low

        item_context = context.child(context.field_name)
        if not schema.unique_items:
            return [self._generate_field(items, item_context) for _ in range(count)]

        result: List[Any] = []
        seen = set()
        attempts = 0
        while len(result) < count and attempts < count * 10:
            attempts += 1
            value = self._generate_field(items, item_context)
            marker = repr(value)
            if marker in seen:
                continue
            seen.add(marker)
            result.append(value)
        return result

    # Primitives

    def _generate_primitive(self, schema: PrimitiveSchema, context: GenerationContext) -> Any:
        if schema.enum:
            return copy.deepcopy(self.rng.choice(schema.enum))

        if schema.type == 'boolean':
            return self.rng.random() < 0.5
        if schema.type == 'integer':
            return self._generate_number(schema, integer=True)
        if schema.type == 'number':
            return self._generate_number(schema, integer=False)
        return self._generate_string(schema, context)

    def _generate_string(self, schema: PrimitiveSchema, context: GenerationContext) -> str:
        fmt = (schema.format or '').lower()
        handler = self._formats.get(fmt)
        if handler is not None:
            return handler(schema)

        if schema.pattern:
            try:
                return self.patterns.generate(schema.pattern)
            except PatternError as e:
                logger.warning(f"Failed to generate string from regex pattern {schema.pattern!r}: {e}")

        length = string_length(self.config.default_string_length, schema.min_length, schema.max_length)

        hinted = self._hinted_string(context.field_name)
        if hinted is not None and (schema.min_length or 0) <= len(hinted) <= (
            schema.max_length if schema.max_length is not None else math.inf
        ):
            return hinted

        return ''.join(self.rng.choices(ALPHANUMERIC, k=length))

    def _hinted_string(self, field_name: Optional[str]) -> Optional[str]:
        if not field_name:
            return None
        key = field_name.lower().replace('_', '').replace('-', '')
        for fragment, provider in NAME_HINTS:
            if fragment in key:
                return str(getattr(self.faker, provider)())
        return None

    def _format_handlers(self) -> Dict[str, Callable[[PrimitiveSchema], str]]:
        return {
            'email': lambda s: self.faker.email(),
            'uri': lambda s: self.faker.url(),
            'url': lambda s: self.faker.url(),
            'uri-reference': lambda s: self.faker.uri_path(),
            'uuid': lambda s: str(uuid.UUID(int=self.rng.getrandbits(128), version=4)),
            'date': lambda s: self._random_date().strftime(self.config.date_format),
            'date-time': lambda s: self._random_datetime().strftime('%Y-%m-%dT%H:%M:%SZ'),
            'time': lambda s: self._random_datetime().strftime('%H:%M:%S'),
            'password': self._password,
            'byte': lambda s: base64.b64encode(self.faker.word().encode('utf-8')).decode('ascii'),
            'binary': lambda s: 'binary data',
            'hostname': lambda s: self.faker.domain_name(),
            'ipv4': lambda s: self.faker.ipv4(),
            'ipv6': lambda s: self.faker.ipv6(),
            'phone': lambda s: self.faker.phone_number(),
        }

    def _password(self, schema: PrimitiveSchema) -> str:
        length = string_length(12, schema.min_length, schema.max_length)
        if length < 4:
            return ''.join(self.rng.choices(ALPHANUMERIC, k=length))
        return self.faker.password(length=length)

    def _random_date(self) -> date:
        return date.today() + timedelta(days=self.rng.randint(-365, 365))

    def _random_datetime(self) -> datetime:
        offset = timedelta(seconds=self.rng.randint(-365 * 86400, 365 * 86400))
        return datetime.now(timezone.utc) + offset

    def _generate_number(self, schema: PrimitiveSchema, integer: bool) -> Any:
        default_low, default_high = self.config.integer_range if integer else self.config.number_range
        span = default_high - default_low
        low, high = schema.minimum, schema.maximum

        if low is None and high is None:
            low, high = default_low, default_high
        elif low is None:
            low = high - span
        elif high is None:
            high = low + span

        if integer:
            low = math.floor(low) + 1 if schema.exclusive_minimum and float(low).is_integer() else math.ceil(low)
            high = math.ceil(high) - 1 if schema.exclusive_maximum and float(high).is_integer() else math.floor(high)
            if high < low:
                return int(low)
            if schema.multiple_of:
                return self._multiple_within(low, high, schema.multiple_of, integer=True)
            return self.rng.randint(low, high)

        if high < low:
            return float(low)
        if schema.multiple_of:
            return self._multiple_within(low, high, schema.multiple_of, integer=False,
                                         exclusive=(schema.exclusive_minimum, schema.exclusive_maximum))

        value = self.rng.uniform(low, high)
        # Nudge off excluded bounds
        nudge = (high - low) * 1e-6 or 1e-9
        if schema.exclusive_minimum and value <= low:
            value = low + nudge
        if schema.exclusive_maximum and value >= high:
            value = high - nudge

        rounded = round(value, 2)
        if in_range(rounded, low, high, schema.exclusive_minimum, schema.exclusive_maximum):
            return rounded
        return value

    def _multiple_within(
        self,
        low: float,
        high: float,
        multiple_of: float,
        integer: bool,
        exclusive: Tuple[bool, bool] = (False, False)
    ) -> Any:
        first = math.ceil(low / multiple_of)
        last = math.floor(high / multiple_of)
        if exclusive[0] and first * multiple_of <= low:
            first += 1
        if exclusive[1] and last * multiple_of >= high:
            last -= 1
        if last < first:
            value = first * multiple_of
        else:
            value = self.rng.randint(first, last) * multiple_of

        if integer:
            return int(round(value))
        return round(value, 10)


def merge_values(values: List[Any]) -> Any:
    """
    Structurally merge allOf branch results.

    Dicts are unioned with later keys overwriting earlier ones; for other
    values the last non-None one wins.
    """
    merged: Any = None
    for value in values:
        if isinstance(value, dict) and isinstance(merged, dict):
            merged.update(value)
        elif isinstance(value, dict):
            merged = dict(value)
        elif value is not None:
            merged = value
    return merged


def array_length(default: int, min_items: Optional[int], max_items: Optional[int]) -> int:
    """clamp(default, min_items, max_items) with unbounded defaults."""
    low = min_items or 0
    count = max(default, low)
    if max_items is not None and max_items >= low:
        count = min(count, max_items)
    return count


def string_length(default: int, min_length: Optional[int], max_length: Optional[int]) -> int:
    """clamp(default, min_length, max_length)."""
    low = min_length or 0
    length = max(default, low)
    if max_length is not None and max_length >= low:
        length = min(length, max_length)
    return length


def in_range(value: float, low: float, high: float, exclusive_low: bool, exclusive_high: bool) -> bool:
    if value < low or (exclusive_low and value == low):
        return False
    if value > high or (exclusive_high and value == high):
        return False
    return True
