"""Tree-sitter based semantic highlighting with language injections."""

__version__ = "0.1.0"
