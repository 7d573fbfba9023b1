"""
Professional Profiles Module

Keeps a professional's child collections consistent and serves the
aggregated profile view.

Features:
- Cardinality ceilings checked under a parent-row lock
- Single principal specialty / address with atomic swaps
- Full-list reconciliation of social accounts and certifications
- Weighted platform score derived on read
- Best-effort profile aggregation with per-slice failure reporting
"""

from .errors import (
    ProfileError,
    ValidationError,
    CardinalityExceeded,
    NotFound,
    ConflictError,
    StorageError
)
from .policies import ChildKind
from .guards import CardinalityGuard, GuardDecision
from .principal import PrincipalSelector
from .reconciler import BulkReconciler
from .scoring import ScoreAggregator
from .aggregator import ProfileAggregator

__all__ = [
    'ProfileError',
    'ValidationError',
    'CardinalityExceeded',
    'NotFound',
    'ConflictError',
    'StorageError',
    'ChildKind',
    'CardinalityGuard',
    'GuardDecision',
    'PrincipalSelector',
    'BulkReconciler',
    'ScoreAggregator',
    'ProfileAggregator'
]
