# Copyright (c) 2025 Voxgig Ltd. MIT LICENSE.
#
# Deep Access
# ===========
#
# Test, read, and write values deep inside nested in-memory data
# structures (maps, lists, and objects), using a list of keys.
#
# Keys are applied according to the kind of the current node: a map
# is traversed by key, a list by index, and an object by method call.
# An undefined node is traversed as a map, but only created (vivified)
# when setting a value. A key can be forced to a specific kind with an
# override dict: {'key': k}, {'index': i}, {'method': name} or
# {'lvalue': name}.
#
# Main utilities
# - deep_exists: true if a value exists at a key path.
# - deep_get: get the value at a key path, or an alternative if absent.
# - deep_set: set the value at a key path, vivifying missing nodes.
# - deep_ref: assignable reference to the value at a key path.
#
# Minor utilities
# - nodekind: classify a value as map, list, object, undefined or scalar.
# - isscalar, isobject, ismap, islist: identify value kinds.
# - mapkey, listindex, methodcall, lvaluecall: build override keys.
# - resolvekey: the effective access kind and key for a path part.
# - pathify: human-friendly string version of a key path.


from typing import *
from enum import Enum
import collections.abc
import logging
import numbers
import re


log = logging.getLogger(__name__)

# Integer list index, possibly negative, in string form.
R_INDEX = re.compile(r'^-?[0-9]+$')

# Override keys.
S_key = 'key'
S_index = 'index'
S_method = 'method'
S_lvalue = 'lvalue'

# General strings.
S_MT = ''
S_DT = '.'
S_CN = ':'

OVERRIDES = (S_key, S_index, S_method, S_lvalue)

# Instances of types defined in these modules are data, not objects.
DATA_MODULES = ('builtins', 'collections')


# The standard undefined value for this language.
UNDEF = None

# Marks a missing slot, which is not the same as a slot holding UNDEF.
ABSENT = object()


class NodeKind(Enum):
    MAPPING = 'mapping'
    SEQUENCE = 'sequence'
    OBJECT = 'object'
    UNDEFINED = 'undefined'
    SCALAR = 'scalar'


class Access(Enum):
    MAPPING = 'mapping'
    SEQUENCE = 'sequence'
    METHOD = 'method'
    LVALUE = 'lvalue'


OVERRIDE_ACCESS = {
    S_key: Access.MAPPING,
    S_index: Access.SEQUENCE,
    S_method: Access.METHOD,
    S_lvalue: Access.LVALUE,
}


class DeepAccessError(Exception):
    """
    Base error. The `path` attribute holds the key path walked up to and
    including the part that failed.
    """
    def __init__(self, msg: str, path: Any = UNDEF) -> None:
        self.path = [] if UNDEF is path else list(path)
        if 0 < len(self.path):
            msg = msg + ' at ' + pathify(self.path)
        super().__init__(msg)


class ConfigurationError(DeepAccessError, ValueError):
    "The key path itself is invalid."


class TraversalError(DeepAccessError, TypeError):
    "The data does not have the shape the key path requires."

    def __init__(self, msg: str, path: Any = UNDEF) -> None:
        super().__init__(msg, path)
        log.debug('traversal error: %s', self)


def isscalar(val: Any = UNDEF) -> bool:
    "Value is a defined plain scalar: string, bytes, boolean or number."
    return isinstance(val, (str, bytes, bytearray, bool, numbers.Number))


def isobject(val: Any = UNDEF) -> bool:
    "Value is an object with methods, not a plain data value."
    if UNDEF is val or isscalar(val):
        return False
    return type(val).__module__ not in DATA_MODULES


def ismap(val: Any = UNDEF) -> bool:
    "Value is a mapping."
    return isinstance(val, collections.abc.Mapping)


def islist(val: Any = UNDEF) -> bool:
    "Value is a sequence, and not a string."
    return isinstance(val, collections.abc.Sequence) and not isscalar(val)


def nodekind(val: Any = UNDEF) -> NodeKind:
    """
    Classify a value for traversal. Objects win over mapping or
    sequence behaviour they might also have.
    """
    if UNDEF is val:
        return NodeKind.UNDEFINED
    if isscalar(val):
        return NodeKind.SCALAR
    if isobject(val):
        return NodeKind.OBJECT
    if ismap(val):
        return NodeKind.MAPPING
    if islist(val):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def mapkey(key: Any) -> Dict[str, Any]:
    "Override: use key as a mapping key."
    return {S_key: key}


def listindex(index: int) -> Dict[str, Any]:
    "Override: use index as a sequence index."
    return {S_index: index}


def methodcall(name: str) -> Dict[str, Any]:
    "Override: call the method name."
    return {S_method: name}


def lvaluecall(name: str) -> Dict[str, Any]:
    "Override: read or assign the attribute name."
    return {S_lvalue: name}


def pathify(path: Any = UNDEF) -> str:
    "Human-friendly string version of a key path."
    parts = []
    for part in topath(path):
        if isinstance(part, dict):
            parts.append('{' + ','.join(
                str(k) + S_CN + str(v) for k, v in part.items()) + '}')
        else:
            parts.append(str(part))
    return '<' + S_DT.join(parts) + '>'


def topath(path: Any = UNDEF) -> List[Any]:
    "A key path as a list. A single value is a path with one part."
    if isinstance(path, (list, tuple)):
        return list(path)
    return [path]


def toindex(key: Any = UNDEF) -> Optional[int]:
    "Sequence index for key, or UNDEF if key is not an index."
    if isinstance(key, bool):
        return UNDEF
    if isinstance(key, int):
        return key
    if isinstance(key, str) and R_INDEX.match(key):
        return int(key)
    return UNDEF


def typename(val: Any) -> str:
    return type(val).__name__


def resolvekey(node: Any, part: Any, path: Any = UNDEF) -> Tuple[Access, Any]:
    """
    Resolve a key path part against the current node, giving the
    access kind and the bare key. Overrides are honored as given;
    bare keys follow the kind of the node.
    """
    if isinstance(part, dict):
        found = [name for name in OVERRIDES if name in part]
        if 1 != len(found):
            raise ConfigurationError(
                "Traversal key dict must contain exactly one of " +
                "'key', 'index', 'method', or 'lvalue'", path)
        name = found[0]
        return OVERRIDE_ACCESS[name], part[name]

    kind = nodekind(node)

    if NodeKind.OBJECT == kind:
        return Access.METHOD, part
    elif NodeKind.SEQUENCE == kind:
        return Access.SEQUENCE, part
    elif NodeKind.SCALAR == kind:
        raise TraversalError("Cannot traverse '" + typename(node) + "'", path)

    # Mappings, and undefined nodes, which are treated as mappings.
    return Access.MAPPING, part


def lookup(node: Any, access: Access, key: Any, path: Any = UNDEF) -> Any:
    """
    Look up the slot for key in node. Returns ABSENT if there is no such
    slot. For method access the slot is the bound method itself.
    """
    kind = nodekind(node)

    if NodeKind.SCALAR == kind:
        raise TraversalError("Cannot traverse '" + typename(node) + "'", path)

    if Access.METHOD == access or Access.LVALUE == access:
        if not isinstance(key, str):
            return ABSENT
        member = getattr(node, key, ABSENT)
        if Access.METHOD == access and not callable(member):
            return ABSENT
        return member

    if Access.MAPPING == access:
        if NodeKind.MAPPING == kind:
            return node[key] if _contains(node, key, path) else ABSENT
        elif NodeKind.SEQUENCE == kind:
            raise TraversalError(
                "Cannot use key on '" + typename(node) + "'", path)
        return _getitem(node, key, path)

    if NodeKind.MAPPING == kind:
        raise TraversalError(
            "Cannot use index on '" + typename(node) + "'", path)
    elif NodeKind.SEQUENCE == kind:
        index = toindex(key)
        if UNDEF is index:
            return ABSENT
        if index < 0:
            index = len(node) + index
        if 0 <= index < len(node) and UNDEF is not node[index]:
            return node[index]
        return ABSENT
    return _getitem(node, key, path)


def _contains(node, key, path):
    try:
        return key in node
    except TypeError as err:
        raise TraversalError(
            "Cannot use key of type '" + typename(key) + "' on '" +
            typename(node) + "'", path) from err


def _getitem(node, key, path):
    try:
        return node[key]
    except (KeyError, IndexError):
        return ABSENT
    except TypeError as err:
        raise TraversalError(
            "Cannot subscript '" + typename(node) + "'", path) from err


def _setitem(node, key, val, path):
    try:
        node[key] = val
    except TypeError as err:
        raise TraversalError(
            "Cannot modify '" + typename(node) + "'", path) from err


def fetch(access: Access, slot: Any) -> Any:
    "The value held by a slot. Methods are called without arguments."
    if Access.METHOD == access:
        return slot()
    return slot


def store(node: Any, access: Access, key: Any, val: Any, path: Any = UNDEF) -> Any:
    """
    Store val in the slot for key in node, and return the stored
    value. For method access this is whatever the method returns.
    """
    kind = nodekind(node)

    if NodeKind.SCALAR == kind:
        raise TraversalError("Cannot traverse '" + typename(node) + "'", path)

    if Access.METHOD == access:
        method = lookup(node, access, key, path)
        if ABSENT is method:
            raise TraversalError(
                "Cannot call method '" + str(key) + "' on '" +
                typename(node) + "'", path)
        return method(val)

    if Access.LVALUE == access:
        if not isinstance(key, str):
            raise TraversalError(
                "Cannot use '" + str(key) + "' as an attribute name", path)
        try:
            setattr(node, key, val)
        except AttributeError as err:
            raise TraversalError(
                "Cannot assign '" + key + "' on '" + typename(node) + "'",
                path) from err
        return val

    if Access.MAPPING == access:
        if NodeKind.SEQUENCE == kind:
            raise TraversalError(
                "Cannot use key on '" + typename(node) + "'", path)
        elif NodeKind.MAPPING == kind and \
                not isinstance(node, collections.abc.MutableMapping):
            raise TraversalError("Cannot modify '" + typename(node) + "'", path)
        _setitem(node, key, val, path)
        return val

    if NodeKind.MAPPING == kind:
        raise TraversalError(
            "Cannot use index on '" + typename(node) + "'", path)
    elif NodeKind.SEQUENCE == kind:
        if not isinstance(node, collections.abc.MutableSequence):
            raise TraversalError("Cannot modify '" + typename(node) + "'", path)
        index = toindex(key)
        if UNDEF is index:
            raise TraversalError(
                "Cannot use '" + str(key) + "' as an index", path)
        if index < 0:
            index = len(node) + index
            if index < 0:
                raise TraversalError(
                    "Index " + str(key) + " is before the start of the list",
                    path)

        # Skipped positions are left as holes.
        if len(node) <= index:
            node.extend([UNDEF] * (1 + index - len(node)))

        node[index] = val
        return val

    _setitem(node, key, val, path)
    return val


class DeepRef:
    """
    Assignable reference to the value at a key path inside a structure.
    Nothing is resolved until the reference is used, and setting the
    value is the same as calling deep_set with the same path.
    """
    def __init__(self, access: 'DeepAccess', structure: Any, path: Any) -> None:
        self.access = access
        self.structure = structure
        self.path = topath(path)

    def exists(self) -> bool:
        return self.access.exists(self.structure, self.path)

    def get(self, alt: Any = UNDEF) -> Any:
        return self.access.get(self.structure, self.path, alt)

    def set(self, val: Any) -> Any:
        return self.access.set(self.structure, self.path, val)

    @property
    def value(self) -> Any:
        return self.get()

    @value.setter
    def value(self, val: Any) -> None:
        self.set(val)

    def __repr__(self) -> str:
        return 'DeepRef(' + pathify(self.path) + ')'


class DeepAccess:
    """
    The deep access utilities, with options for the kind of nodes
    created when vivifying: `mapping` and `sequence` are factories for
    empty maps and lists.
    """
    def __init__(self, mapping: Callable[[], Any] = dict,
                 sequence: Callable[[], Any] = list) -> None:
        self.mapping = mapping
        self.sequence = sequence

    def exists(self, structure: Any, path: Any) -> bool:
        "True if a value exists in the structure at the key path."
        parts = topath(path)
        if 0 == len(parts):
            return True
        _, slot = self._find(structure, parts)
        return ABSENT is not slot

    def get(self, structure: Any, path: Any, alt: Any = UNDEF) -> Any:
        "Get the value at the key path, or alt if there is none."
        parts = topath(path)
        if 0 == len(parts):
            return structure
        access, slot = self._find(structure, parts)
        if ABSENT is slot:
            return alt
        return fetch(access, slot)

    def set(self, structure: Any, path: Any, val: Any) -> Any:
        """
        Set the value at the key path, vivifying missing nodes on the
        way. Returns the value stored.
        """
        parts = topath(path)
        if 0 == len(parts):
            raise ConfigurationError('Cannot set a value without a key path')
        if UNDEF is structure:
            raise ConfigurationError('Cannot vivify an undefined structure')

        node = structure
        last = len(parts) - 1

        for pI, part in enumerate(parts):
            here = parts[:pI + 1]
            access, key = resolvekey(node, part, here)

            if last == pI:
                return store(node, access, key, val, here)

            slot = lookup(node, access, key, here)

            if Access.METHOD == access and ABSENT is slot:
                raise TraversalError(
                    "Cannot call method '" + str(key) + "' on '" +
                    typename(node) + "'", here)

            child = UNDEF if ABSENT is slot else fetch(access, slot)

            if UNDEF is child:
                child = self._vivify(parts[pI + 1], parts[:pI + 2])
                log.debug('vivified %s at %s', typename(child), pathify(here))
                store(node, access, key, child, here)

            node = child

    def ref(self, structure: Any, path: Any) -> DeepRef:
        "Assignable reference to the value at the key path."
        return DeepRef(self, structure, path)

    deep_exists = exists
    deep_get = get
    deep_set = set
    deep_ref = ref

    def _find(self, structure, parts):
        # Walk to the last part, returning its access kind and slot.
        node = structure
        last = len(parts) - 1
        access = UNDEF

        for pI, part in enumerate(parts):
            if UNDEF is node:
                return access, ABSENT

            here = parts[:pI + 1]
            access, key = resolvekey(node, part, here)
            slot = lookup(node, access, key, here)

            if ABSENT is slot or last == pI:
                return access, slot

            node = fetch(access, slot)

    def _vivify(self, nextpart, path):
        # The next part decides what kind of node is created.
        if isinstance(nextpart, dict):
            access, _ = resolvekey(UNDEF, nextpart, path)
            if Access.METHOD == access or Access.LVALUE == access:
                raise ConfigurationError('Cannot vivify a method call', path)
            elif Access.SEQUENCE == access:
                return self.sequence()
        return self.mapping()


_deep_access = DeepAccess()


def deep_exists(structure: Any, path: Any) -> bool:
    """
    True if a value exists in the structure at the key path. Nothing is
    vivified: a missing node gives False.
    """
    return _deep_access.exists(structure, path)


def deep_get(structure: Any, path: Any, alt: Any = UNDEF) -> Any:
    """
    Get the value at the key path. Nothing is vivified: a missing node
    gives alt (default None).
    """
    return _deep_access.get(structure, path, alt)


def deep_set(structure: Any, path: Any, val: Any) -> Any:
    """
    Set the value at the key path. Missing nodes are vivified as maps,
    or as lists if the next key is an index override.
    """
    return _deep_access.set(structure, path, val)


def deep_ref(structure: Any, path: Any) -> DeepRef:
    "Assignable reference to the value at the key path."
    return _deep_access.ref(structure, path)


__all__ = [
    'ABSENT',
    'Access',
    'ConfigurationError',
    'DeepAccess',
    'DeepAccessError',
    'DeepRef',
    'NodeKind',
    'TraversalError',
    'UNDEF',
    'deep_exists',
    'deep_get',
    'deep_ref',
    'deep_set',
    'fetch',
    'isobject',
    'isscalar',
    'islist',
    'ismap',
    'listindex',
    'lookup',
    'lvaluecall',
    'mapkey',
    'methodcall',
    'nodekind',
    'pathify',
    'resolvekey',
    'store',
    'toindex',
    'topath',
]
