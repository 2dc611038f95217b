# deep_access init

import logging

from .deep_access import (
    ABSENT,
    Access,
    ConfigurationError,
    DeepAccess,
    DeepAccessError,
    DeepRef,
    NodeKind,
    TraversalError,
    UNDEF,
    deep_exists,
    deep_get,
    deep_ref,
    deep_set,
    isobject,
    isscalar,
    islist,
    ismap,
    listindex,
    lvaluecall,
    mapkey,
    methodcall,
    nodekind,
    pathify,
    resolvekey,
)


logging.getLogger(__name__).addHandler(logging.NullHandler())


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
    'isobject',
    'isscalar',
    'islist',
    'ismap',
    'listindex',
    'lvaluecall',
    'mapkey',
    'methodcall',
    'nodekind',
    'pathify',
    'resolvekey',
]
