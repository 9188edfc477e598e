# serfix.py
# SERFIX: repair for corrupted PHP serialize() text.
# Valid input comes back unchanged; wrong lengths, truncation and junk are recovered.
# No external dependencies.

import logging
import math
import re
import sys
from collections import namedtuple
from decimal import Decimal
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 128
DEFAULT_MAX_PLACEHOLDERS = 65536

INT_MIN = -(1 << 63)
INT_MAX = (1 << 63) - 1

NULL = b"N;"

FixTrace = namedtuple("FixTrace", ["original", "result", "leftover"])


# Element kinds, keyed by their type tag
class Kind(Enum):
    NULL = b"N"
    BOOL = b"b"
    INT = b"i"
    DOUBLE = b"d"
    STRING = b"s"
    ARRAY = b"a"
    OBJECT = b"O"
    CUSTOM_OBJECT = b"C"
    REFERENCE = b"R"
    OBJECT_REFERENCE = b"r"

TAGS = {kind.value: kind for kind in Kind}
COMPOSITES = frozenset([Kind.ARRAY, Kind.OBJECT, Kind.CUSTOM_OBJECT])


# A string field is closed by its quote plus the mode's terminator.
# Custom payloads end at the closing brace itself.
class StringMode(Enum):
    PLAIN = b";"
    CLASS_NAME = b":"
    CUSTOM_PAYLOAD = b""

    @property
    def terminator(self):
        return self.value

QUOTES = {b'"': b'"', b"'": b"'", b"{": b"}"}

_LENGTH_RX = re.compile(rb":(\d*):")
_NUMBER_RX = re.compile(rb":?([-+]?\d*(?:\.\d*)?)(?:;|\Z)")
# doubles also come back from PHP as 1.0E+25, INF and NAN
_DOUBLE_RX = re.compile(rb":?([-+]?(?:INF|NAN|\d*(?:\.\d*)?(?:[eE][-+]?\d+)?))(?:;|\Z)")
_INT_RX = re.compile(rb"[-+]?\d+")
_UNQUOTED_RX = {
    mode: re.compile(rb"(.*?)[\"'}]" + re.escape(mode.terminator), re.DOTALL)
    for mode in StringMode
}


# Cursor: unconsumed tail of the input; only unshift() ever moves pos back
class Cursor:
    __slots__ = ("data", "pos", "depth", "max_depth", "max_placeholders")

    def __init__(self, data: bytes, max_depth=DEFAULT_MAX_DEPTH,
                 max_placeholders=DEFAULT_MAX_PLACEHOLDERS):
        self.data = data
        self.pos = 0
        self.depth = 0
        self.max_depth = max_depth
        self.max_placeholders = max_placeholders

    def __len__(self):
        return len(self.data) - self.pos

    def __bool__(self):
        return self.pos < len(self.data)

    def peek(self, n=1):
        return self.data[self.pos:self.pos + n]

    def skip(self, n=1):
        self.pos = min(self.pos + n, len(self.data))

    def take(self, n=1):
        chunk = self.peek(n)
        self.pos += len(chunk)
        return chunk

    def take_if(self, prefix: bytes):
        if self.data.startswith(prefix, self.pos):
            self.pos += len(prefix)
            return True
        return False

    def rest(self):
        return self.data[self.pos:]

    def drain(self):
        chunk = self.rest()
        self.pos = len(self.data)
        return chunk

    def match(self, rx):
        m = rx.match(self.data, self.pos)
        if m is not None:
            self.pos = m.end()
        return m

    def unshift(self, prefix: bytes):
        start = self.pos - len(prefix)
        if start >= 0 and self.data.startswith(prefix, start):
            self.pos = start
        else:
            self.data = prefix + self.data[self.pos:]
            self.pos = 0


# Length fields
def extract_length(cur: Cursor):
    # None (absent) is not 0: callers fall back differently
    m = cur.match(_LENGTH_RX)
    if m is None:
        cur.take_if(b":")
        return None
    digits = m.group(1).lstrip(b"0")
    if len(digits) > 18:
        return sys.maxsize
    return int(digits or b"0")


# Numbers
def _read_number(cur: Cursor, rx=_NUMBER_RX):
    m = cur.match(rx)
    if m is None:
        cur.take_if(b":")
        return b""
    return m.group(1)

def _to_float(text: bytes):
    try:
        return float(text.decode("ascii"))
    except ValueError:
        return 0.0

def _to_int(text: bytes):
    # plain integer literals skip the float round trip so 64-bit values stay exact
    if _INT_RX.fullmatch(text):
        try:
            n = int(text.decode("ascii"))
        except ValueError:
            n = 0
    else:
        f = _to_float(text)
        n = int(f) if math.isfinite(f) else 0
    return n if INT_MIN <= n <= INT_MAX else 0

def format_double(f: float):
    # PHP zend_gcvt mode 0 spelling
    if math.isnan(f):
        return "NAN"
    if math.isinf(f):
        return "INF" if f > 0 else "-INF"
    if f == 0:
        return "-0" if math.copysign(1.0, f) < 0 else "0"
    sign, digit_tuple, exponent = Decimal(repr(f)).as_tuple()
    decpt = len(digit_tuple) + exponent
    digits = "".join(map(str, digit_tuple)).rstrip("0")
    if decpt < -3 or decpt > 17:
        exp10 = decpt - 1
        body = "%s.%sE%s%d" % (digits[0], digits[1:] or "0", "-" if exp10 < 0 else "+", abs(exp10))
    elif decpt <= 0:
        body = "0." + "0" * -decpt + digits
    elif len(digits) <= decpt:
        body = digits + "0" * (decpt - len(digits))
    else:
        body = digits[:decpt] + "." + digits[decpt:]
    return ("-" if sign else "") + body

def recover_double_value(cur: Cursor):
    return _to_float(_read_number(cur, _DOUBLE_RX))

def recover_int_value(cur: Cursor):
    return _to_int(_read_number(cur))


# Scalars
def _recover_null(cur: Cursor):
    cur.take_if(b";")
    return NULL

def _recover_bool(cur: Cursor):
    return b"b:1;" if recover_int_value(cur) else b"b:0;"

def _recover_int(cur: Cursor):
    return b"i:%d;" % recover_int_value(cur)

def _recover_double(cur: Cursor):
    return b"d:%b;" % format_double(recover_double_value(cur)).encode("ascii")

def _recover_reference(cur: Cursor, tag: bytes):
    # the index is not checked against the elements parsed so far
    return b"%b:%d;" % (tag, recover_int_value(cur))


# Strings
def _read_quoted(cur: Cursor, length, mode):
    close = QUOTES[cur.take(1)]
    tail = close + mode.terminator
    data, start = cur.data, cur.pos
    remaining = len(cur)

    # string is the last thing left in the input
    if remaining == length + 1 and data.endswith(close):
        return cur.drain()[:-1]
    # declared length is right
    if data.startswith(tail, start + length):
        content = cur.take(length)
        cur.skip(len(tail))
        return content
    # truncated
    if remaining <= length:
        content = cur.drain()
        if content.endswith(tail):
            return content[:-len(tail)]
        if content.endswith(close):
            return content[:-1]
        return content
    # length changed by re-encoding, but the tail is intact
    if remaining >= len(tail) and data.endswith(tail):
        return cur.drain()[:-len(tail)]

    found = data.find(close, start)
    content = cur.drain()
    if found == len(data) - 1:
        return content[:-1]
    # no closing quote, or one in an unexpected place: keep everything
    return content

def _read_unquoted(cur: Cursor, mode):
    m = cur.match(_UNQUOTED_RX[mode])
    if m is not None:
        return m.group(1)
    return cur.drain()

def recover_string(cur: Cursor, mode=StringMode.PLAIN):
    content = b""
    length = extract_length(cur)
    if length is not None:
        if cur.peek() in QUOTES:
            content = _read_quoted(cur, length, mode)
        else:
            content = _read_unquoted(cur, mode)
    if mode is StringMode.PLAIN:
        return b's:%d:"%b";' % (len(content), content)
    return content

def _recover_plain_string(cur: Cursor):
    return recover_string(cur, StringMode.PLAIN)


# Composites
def _null_placeholders(cur: Cursor, count):
    if count > cur.max_placeholders:
        logger.debug("array placeholder count %d over limit %d, collapsing to null",
                     count, cur.max_placeholders)
        return NULL
    body = b"".join(b"i:%d;N;" % i for i in range(count))
    return b"a:%d:{%b}" % (count, body)

def _recover_array(cur: Cursor):
    count = extract_length(cur)
    if count is None:
        return b"a:0:{}"
    if cur.peek() != b"{":
        return _null_placeholders(cur, count)
    cur.skip(1)

    pairs = 0
    body = []
    while cur:
        if cur.take_if(b"}"):
            cur.take_if(b";")
            break
        body.append(recover_element(cur))
        body.append(recover_element(cur))
        pairs += 1
    return b"a:%d:{%b}" % (pairs, b"".join(body))

def _recover_object(cur: Cursor):
    name = recover_string(cur, StringMode.CLASS_NAME)
    if not name:
        return NULL
    cur.unshift(b":")
    # property list has the array body grammar; drop the array's own tag
    props = _recover_array(cur)
    if props == NULL:
        return NULL
    return b'O:%d:"%b"%b' % (len(name), name, props[1:])

def _recover_custom_object(cur: Cursor):
    name = recover_string(cur, StringMode.CLASS_NAME)
    if not name:
        return NULL
    cur.unshift(b":")
    payload = recover_string(cur, StringMode.CUSTOM_PAYLOAD)
    return b'C:%d:"%b":%d:{%b}' % (len(name), name, len(payload), payload)


# Dispatcher
_RECOVERERS = {
    Kind.NULL: _recover_null,
    Kind.BOOL: _recover_bool,
    Kind.INT: _recover_int,
    Kind.DOUBLE: _recover_double,
    Kind.STRING: _recover_plain_string,
    Kind.ARRAY: _recover_array,
    Kind.OBJECT: _recover_object,
    Kind.CUSTOM_OBJECT: _recover_custom_object,
    Kind.REFERENCE: lambda cur: _recover_reference(cur, b"R"),
    Kind.OBJECT_REFERENCE: lambda cur: _recover_reference(cur, b"r"),
}

def recover_element(cur: Cursor):
    kind = TAGS.get(cur.take(1))
    if kind is None:
        # unknown tag or end of input: nothing after this point can be trusted
        cur.drain()
        return NULL
    if kind not in COMPOSITES:
        return _RECOVERERS[kind](cur)
    if cur.depth >= cur.max_depth:
        logger.debug("nesting deeper than %d, collapsing to null", cur.max_depth)
        cur.drain()
        return NULL
    cur.depth += 1
    result = _RECOVERERS[kind](cur)
    cur.depth -= 1
    return result


# Entry points
def _fix_bytes(raw: bytes, max_depth, max_placeholders):
    if not raw:
        return NULL, b""
    cur = Cursor(raw, max_depth, max_placeholders)
    result = recover_element(cur)
    return result, cur.rest()

def fix_traced(data, max_depth=DEFAULT_MAX_DEPTH, max_placeholders=DEFAULT_MAX_PLACEHOLDERS):
    # str is repaired on its UTF-8 bytes (surrogateescape both ways); bytearray comes back as bytearray
    if isinstance(data, str):
        try:
            raw = data.encode("utf-8", "surrogateescape")
        except UnicodeEncodeError:
            return data, FixTrace(data, data, None)
        result, leftover = _fix_bytes(raw, max_depth, max_placeholders)
        result = result.decode("utf-8", "surrogateescape")
        leftover = leftover.decode("utf-8", "surrogateescape")
    elif isinstance(data, (bytes, bytearray)):
        result, leftover = _fix_bytes(bytes(data), max_depth, max_placeholders)
        if isinstance(data, bytearray):
            result, leftover = bytearray(result), bytearray(leftover)
    else:
        return data, FixTrace(data, data, None)
    return result, FixTrace(data, result, leftover)

def fix(data, debug=False, max_depth=DEFAULT_MAX_DEPTH, max_placeholders=DEFAULT_MAX_PLACEHOLDERS):
    result, trace = fix_traced(data, max_depth=max_depth, max_placeholders=max_placeholders)
    if debug:
        logger.debug("input: %r result: %r unprocessed: %r", *trace)
    return result

def needs_fix(data):
    return fix(data) != data
