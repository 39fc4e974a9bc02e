"""
Backward engine: topological ordering and the reverse accumulation pass.

Traversal is iterative with an explicit stack, so graph size is bounded
only by memory (not by a fixed buffer or the interpreter recursion limit).
"""

import logging

from scalargrad.core.autograd import Value

logger = logging.getLogger(__name__)


def topological_order(root: Value) -> list[Value]:
    """
    Post-order DFS over origin -> operand edges.

    Every node appears after all of its operands; root is last. Nodes are
    deduplicated by identity, so shared sub-expressions appear once.
    """
    topo = []
    visited = set()

    # (node, expanded) frames: a node is emitted on its second visit,
    # after all its operands have been emitted.
    stack = [(root, False)]
    while stack:
        v, expanded = stack.pop()
        if expanded:
            topo.append(v)
            continue
        if id(v) in visited:
            continue
        visited.add(id(v))
        stack.append((v, True))
        if v.origin is not None:
            # reversed so operands are expanded in saved order
            for child in reversed(v.origin.saved_values):
                if id(child) not in visited:
                    stack.append((child, False))

    return topo


def backward(root: Value) -> None:
    """
    Accumulate d(root)/d(node) into node.grad for every node feeding root.

    A leaf root is a no-op. A root whose grad is still zero is seeded with
    1.0; a non-zero grad set by the caller is kept as the upstream gradient.
    """
    if root.origin is None:
        return

    if root.grad == 0.0:
        root.grad = 1.0

    topo = topological_order(root)
    logger.debug(f"[Backward] {len(topo)} nodes, seed grad={root.grad}")

    for v in reversed(topo):
        if v.origin is not None:
            v.origin.backward(v.grad)
