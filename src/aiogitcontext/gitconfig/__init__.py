"""Global git config rewriting."""

from .transformer import ConfigTransformer, LineConfigTransformer

__all__ = ["ConfigTransformer", "LineConfigTransformer"]
