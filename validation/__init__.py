"""
Validation module for the training record sync.

Provides configuration validation and VATUSA error classification.
"""

from validation.config import TrainingSyncConfig, validate_config

__all__ = [
    'TrainingSyncConfig',
    'validate_config',
]
