from __future__ import annotations

"""
MIT License
Copyright (c) 2026 socioy
See LICENSE file for full license text.

This module defines custom exceptions for error handling in the oracle package.
"""


class ModelOracleError(Exception):
    """Base exception for all model-oracle failures."""

    pass


class ModelOracleExhaustedError(ModelOracleError):
    """Raised when a scripted oracle is asked for more rounds than it holds."""

    pass


class ModelOracleProtocolError(ModelOracleError):
    """
    The oracle stream ended without a completed response, or returned
    something that is not a `ModelResponse`.
    """

    pass
