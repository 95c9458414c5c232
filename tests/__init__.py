"""
ShelfReader Test Suite

Tests are organized into:
- unit/: Unit tests for individual components
- integration/: Scanner tests across detection, pipeline and fallback
"""
