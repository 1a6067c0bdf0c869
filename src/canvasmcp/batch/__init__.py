"""Batch design scripts: lexer, parser and the transactional processor."""

from .lexer import Lexer, ScriptSyntaxError, Token, TokenKind, tokenize
from .parser import OPERATIONS, Binding, Parser, Statement, parse_script
from .processor import (
    BatchDesignProcessor,
    BatchError,
    BatchOperationError,
    BatchReport,
    BindingError,
)

__all__ = [
    # Lexing
    "Lexer",
    "Token",
    "TokenKind",
    "ScriptSyntaxError",
    "tokenize",
    # Parsing
    "OPERATIONS",
    "Binding",
    "Parser",
    "Statement",
    "parse_script",
    # Execution
    "BatchDesignProcessor",
    "BatchReport",
    "BatchError",
    "BatchOperationError",
    "BindingError",
]
