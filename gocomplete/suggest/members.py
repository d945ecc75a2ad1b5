"""
Member lookup with embedded-field promotion.

Members of a type are visited breadth first: the type's own fields and
methods, then those of its embedded types, then theirs, and so on. A type
is visited at most once, which stops recursive embedding. Shallow members
come first, so a collector that keeps the first name it sees reproduces
Go's promotion rules.
"""

from __future__ import annotations

from typing import Callable

from gocomplete.resolver.base import Analysis, Symbol, SymbolResolver, TypeRef

Visitor = Callable[[Symbol], object]


async def walk_members(
    resolver: SymbolResolver,
    analysis: Analysis,
    root: TypeRef,
    visit: Visitor,
    include_fields: bool = True,
) -> None:
    """
    Visit the members of root, including promoted ones.

    Args:
        resolver: Resolver answering type_members queries
        analysis: Analysis of the current request
        root: Type whose members are wanted
        visit: Called once per member, shallowest first
        include_fields: False for method expressions (T.Method)
    """
    seen: set[str] = set()
    level = [root]

    while level:
        next_level: list[TypeRef] = []
        for typ in level:
            if typ.name in seen:
                continue
            seen.add(typ.name)

            members = await resolver.type_members(analysis, typ)
            for method in members.methods:
                visit(method)
            if include_fields:
                for f in members.fields:
                    visit(f)
            next_level.extend(members.embedded)
        level = next_level
