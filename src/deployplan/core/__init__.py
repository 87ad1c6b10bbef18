"""Core of deployplan: the builder, plan, futures and their contracts.

Import from the concrete submodules, e.g. ``deployplan.core.builder`` or
``deployplan.core.settings``.
"""
