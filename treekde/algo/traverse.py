from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, List, Protocol, Sequence, Tuple

from treekde.core.tree import TreeNode
from treekde.logging import get_logger
from .rules import PRUNE

LOGGER = get_logger("algo.traverse")


class TraversalRules(Protocol):
    def score(self, query: Any, reference_node: TreeNode) -> float:
        ...

    def rescore(self, query: Any, reference_node: TreeNode, old_score: float) -> float:
        ...

    def base_case(self, query_index: int, reference_index: int) -> float:
        ...


@dataclass
class TraversalContext:
    """Progress counters threaded through one traversal."""

    num_scored: int = 0
    num_pruned: int = 0
    num_leaf_pairs: int = 0
    max_depth: int = 0

    def note_depth(self, depth: int) -> None:
        if depth > self.max_depth:
            self.max_depth = depth


def _expand(node: TreeNode) -> Sequence[TreeNode]:
    return (node,) if node.is_leaf else node.children


def _run_base_cases(
    rules: TraversalRules,
    query_node: TreeNode,
    reference_node: TreeNode,
    context: TraversalContext,
    *,
    batch: bool,
) -> None:
    context.num_leaf_pairs += 1
    block = getattr(rules, "base_case_block", None) if batch else None
    if block is not None:
        block(query_node.begin, query_node.count, reference_node.begin, reference_node.count)
        return
    for query_index in range(query_node.begin, query_node.begin + query_node.count):
        for reference_index in range(
            reference_node.begin, reference_node.begin + reference_node.count
        ):
            rules.base_case(query_index, reference_index)


class DualTreeTraverser:
    """Depth-first dual recursion over (query node, reference node) pairs.

    For each query child the reference children are scored, visited closest
    first, and every later sibling is rescored right before it is entered.
    """

    def __init__(self, rules: TraversalRules, *, batch_base_cases: bool = True) -> None:
        self.rules = rules
        self.batch_base_cases = batch_base_cases
        self.context = TraversalContext()

    def traverse(self, query_root: TreeNode, reference_root: TreeNode) -> TraversalContext:
        score = self.rules.score(query_root, reference_root)
        self.context.num_scored += 1
        if score == PRUNE:
            self.context.num_pruned += 1
        else:
            self._recurse(query_root, reference_root, 0)
        LOGGER.debug(
            "Depth-first traversal scored=%d pruned=%d leaf_pairs=%d depth=%d",
            self.context.num_scored,
            self.context.num_pruned,
            self.context.num_leaf_pairs,
            self.context.max_depth,
        )
        return self.context

    def _recurse(self, query_node: TreeNode, reference_node: TreeNode, depth: int) -> None:
        context = self.context
        context.note_depth(depth)
        if query_node.is_leaf and reference_node.is_leaf:
            _run_base_cases(
                self.rules, query_node, reference_node, context, batch=self.batch_base_cases
            )
            return

        reference_children = _expand(reference_node)
        for query_child in _expand(query_node):
            scored: List[Tuple[float, int, TreeNode]] = []
            for order, reference_child in enumerate(reference_children):
                score = self.rules.score(query_child, reference_child)
                context.num_scored += 1
                if score == PRUNE:
                    context.num_pruned += 1
                    continue
                scored.append((score, order, reference_child))
            scored.sort(key=lambda item: (item[0], item[1]))
            for position, (score, _, reference_child) in enumerate(scored):
                if position > 0:
                    score = self.rules.rescore(query_child, reference_child, score)
                    if score == PRUNE:
                        context.num_pruned += 1
                        continue
                self._recurse(query_child, reference_child, depth + 1)


class BreadthFirstDualTreeTraverser:
    """Level-by-level dual traversal; pairs are scored on enqueue, rescored on dequeue."""

    def __init__(self, rules: TraversalRules, *, batch_base_cases: bool = True) -> None:
        self.rules = rules
        self.batch_base_cases = batch_base_cases
        self.context = TraversalContext()

    def traverse(self, query_root: TreeNode, reference_root: TreeNode) -> TraversalContext:
        context = self.context
        queue: Deque[Tuple[TreeNode, TreeNode, float, int]] = deque()
        score = self.rules.score(query_root, reference_root)
        context.num_scored += 1
        if score == PRUNE:
            context.num_pruned += 1
        else:
            queue.append((query_root, reference_root, score, 0))

        while queue:
            query_node, reference_node, score, depth = queue.popleft()
            context.note_depth(depth)
            if depth > 0:
                score = self.rules.rescore(query_node, reference_node, score)
                if score == PRUNE:
                    context.num_pruned += 1
                    continue
            if query_node.is_leaf and reference_node.is_leaf:
                _run_base_cases(
                    self.rules, query_node, reference_node, context, batch=self.batch_base_cases
                )
                continue
            reference_children = _expand(reference_node)
            for query_child in _expand(query_node):
                for reference_child in reference_children:
                    child_score = self.rules.score(query_child, reference_child)
                    context.num_scored += 1
                    if child_score == PRUNE:
                        context.num_pruned += 1
                        continue
                    queue.append((query_child, reference_child, child_score, depth + 1))

        LOGGER.debug(
            "Breadth-first traversal scored=%d pruned=%d leaf_pairs=%d depth=%d",
            context.num_scored,
            context.num_pruned,
            context.num_leaf_pairs,
            context.max_depth,
        )
        return context


class SingleTreeTraverser:
    """Per-query-point depth-first descent of the reference tree."""

    def __init__(self, rules: TraversalRules, *, batch_base_cases: bool = True) -> None:
        self.rules = rules
        self.batch_base_cases = batch_base_cases
        self.context = TraversalContext()

    def traverse(self, query_index: int, reference_root: TreeNode) -> TraversalContext:
        score = self.rules.score(query_index, reference_root)
        self.context.num_scored += 1
        if score == PRUNE:
            self.context.num_pruned += 1
        else:
            self._recurse(query_index, reference_root, 0)
        return self.context

    def _recurse(self, query_index: int, reference_node: TreeNode, depth: int) -> None:
        context = self.context
        context.note_depth(depth)
        if reference_node.is_leaf:
            context.num_leaf_pairs += 1
            block = getattr(self.rules, "base_case_block", None) if self.batch_base_cases else None
            if block is not None:
                block(query_index, 1, reference_node.begin, reference_node.count)
            else:
                for reference_index in range(
                    reference_node.begin, reference_node.begin + reference_node.count
                ):
                    self.rules.base_case(query_index, reference_index)
            return

        scored: List[Tuple[float, int, TreeNode]] = []
        for order, child in enumerate(reference_node.children):
            score = self.rules.score(query_index, child)
            context.num_scored += 1
            if score == PRUNE:
                context.num_pruned += 1
                continue
            scored.append((score, order, child))
        scored.sort(key=lambda item: (item[0], item[1]))
        for position, (score, _, child) in enumerate(scored):
            if position > 0:
                score = self.rules.rescore(query_index, child, score)
                if score == PRUNE:
                    context.num_pruned += 1
                    continue
            self._recurse(query_index, child, depth + 1)


__all__ = [
    "BreadthFirstDualTreeTraverser",
    "DualTreeTraverser",
    "SingleTreeTraverser",
    "TraversalContext",
    "TraversalRules",
]
