"""
Pure cart state transitions.

Every function takes a key -> line mapping and returns a new one; inputs are
never mutated. Keying by (product_id, variant_id) keeps lines unique by
construction.
"""
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping

from .models import CartKey, CartLine

Lines = Dict[CartKey, CartLine]


def index_lines(lines: Iterable[CartLine]) -> Lines:
    """Build a key -> line map; a later duplicate key replaces an earlier one."""
    return {line.key: line for line in lines}


def merge_lines(server_lines: Iterable[CartLine], local_lines: Iterable[CartLine]) -> Lines:
    """
    Merge the server cart with the client-local cart.

    Server lines win on key overlap; local lines are added only for keys the
    server does not have.
    """
    merged = index_lines(server_lines)
    for line in local_lines:
        if line.key not in merged:
            merged[line.key] = line
    return merged


def add_line(lines: Mapping[CartKey, CartLine], line: CartLine) -> Lines:
    """Increment an existing line by one, or insert `line` with quantity 1."""
    updated = dict(lines)
    existing = updated.get(line.key)
    if existing is not None:
        updated[line.key] = existing.with_quantity(existing.quantity + 1)
    else:
        updated[line.key] = line.with_quantity(1)
    return updated


def set_quantity(lines: Mapping[CartKey, CartLine], key: CartKey, quantity: int) -> Lines:
    """Set an absolute quantity; quantity <= 0 removes the line."""
    if quantity <= 0:
        return remove_line(lines, key)
    updated = dict(lines)
    existing = updated.get(key)
    if existing is not None:
        updated[key] = existing.with_quantity(quantity)
    return updated


def remove_line(lines: Mapping[CartKey, CartLine], key: CartKey) -> Lines:
    updated = dict(lines)
    updated.pop(key, None)
    return updated


def total_quantity(lines: Mapping[CartKey, CartLine]) -> int:
    return sum(line.quantity for line in lines.values())


@dataclass
class SyncPlan:
    """Server calls needed to make the server cart equal a target cart."""
    inserts: List[CartLine] = field(default_factory=list)
    updates: List[CartLine] = field(default_factory=list)
    deletes: List[CartKey] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)


def plan_sync(target: Mapping[CartKey, CartLine], server: Mapping[CartKey, CartLine]) -> SyncPlan:
    """Compute inserts, quantity updates and deletes from `server` to `target`."""
    plan = SyncPlan()
    for key, line in target.items():
        server_line = server.get(key)
        if server_line is None:
            plan.inserts.append(line)
        elif server_line.quantity != line.quantity:
            plan.updates.append(line)
    for key in server:
        if key not in target:
            plan.deletes.append(key)
    return plan
