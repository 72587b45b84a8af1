"""Instruction decode pipeline and inner-instruction tree assembly.

Each call is decoded in isolation: an unresolvable schema, an unknown
discriminator or an argument decode failure degrades only that call to a
marker ``{"program_id": ..., "unknown": True}``. Inner calls are always
decoded, each resolving its own program's schema.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from .account_meta import validate_account_metas
from .cursor import ByteCursor
from .decoder import DEFAULT_MAX_DEPTH, TypeDecoder
from .discriminators import DISCRIMINATOR_SIZE
from .errors import DecodeError
from .idl import SchemaIndex
from .message import CompiledInstruction, Message


logger = logging.getLogger(__name__)

SchemaResolver = Callable[[str], SchemaIndex]

DEFAULT_MAX_INNER_DEPTH = 16

# Top-level calls run at stack height 1; their direct inner calls at 2
TOP_LEVEL_STACK_HEIGHT = 1


@dataclass
class CallNode:
    """A compiled call together with the calls it triggered."""
    call: CompiledInstruction
    children: List["CallNode"] = field(default_factory=list)


def nest_inner_calls(calls: Sequence[CompiledInstruction]) -> List[CallNode]:
    """Arrange a flat inner-instruction list into a tree by stack height.

    A call at height h+1 is a child of the closest preceding call at height h.
    Calls without a recorded height are direct children of the top-level call.
    """
    roots: List[CallNode] = []
    stack: List[tuple] = []  # (height, node)
    for call in calls:
        height = call.stack_height if call.stack_height is not None else TOP_LEVEL_STACK_HEIGHT + 1
        node = CallNode(call)
        while stack and stack[-1][0] >= height:
            stack.pop()
        if stack:
            stack[-1][1].children.append(node)
        else:
            roots.append(node)
        stack.append((height, node))
    return roots


def _unknown(program_id: Optional[str], **extra: Any) -> Dict[str, Any]:
    marker: Dict[str, Any] = {"program_id": program_id, "unknown": True}
    marker.update(extra)
    return marker


def _decode_single(
    schema_resolver: SchemaResolver,
    call: CompiledInstruction,
    message: Message,
    max_type_depth: int,
) -> Dict[str, Any]:
    try:
        program_id = message.key_at(call.program_id_index)
    except IndexError as e:
        logger.warning("Instruction program index invalid: %s", e)
        return _unknown(None, error=str(e))

    try:
        schema = schema_resolver(program_id)
    except Exception as e:
        # Any resolver failure degrades only this call
        logger.warning("No schema for program %s: %s", program_id, e)
        return _unknown(program_id)

    op = schema.operation_index.get(bytes(call.data[:DISCRIMINATOR_SIZE]))
    if op is None:
        logger.warning("Unknown instruction discriminator for program %s (%s)", program_id, schema.name)
        return _unknown(program_id)

    cursor = ByteCursor(bytes(call.data[DISCRIMINATOR_SIZE:]))
    try:
        args = TypeDecoder(schema.type_table, max_depth=max_type_depth).decode_fields(op.args, cursor, [op.name])
    except DecodeError as e:
        logger.warning("Failed to decode %s.%s args: %s", schema.name, op.name, e)
        return _unknown(program_id, instruction_name=op.name, error=str(e))

    try:
        observed = message.observed_accounts(call.accounts)
    except IndexError as e:
        logger.warning("Instruction %s.%s references invalid account: %s", schema.name, op.name, e)
        return _unknown(program_id, instruction_name=op.name, error=str(e))

    validation = validate_account_metas(op.accounts, observed, program_id=program_id)
    result: Dict[str, Any] = {
        "program_id": program_id,
        "program_name": schema.name,
        "instruction_name": op.name,
        "args": args,
        "accounts": [entry.to_dict() for entry in validation.entries],
    }
    if validation.remaining:
        result["remaining_accounts"] = [entry.to_dict() for entry in validation.remaining]
    return result


def _decode_node(
    schema_resolver: SchemaResolver,
    node: CallNode,
    message: Message,
    depth: int,
    max_inner_depth: int,
    max_type_depth: int,
) -> Dict[str, Any]:
    if depth > max_inner_depth:
        program_id = None
        try:
            program_id = message.key_at(node.call.program_id_index)
        except IndexError:
            pass
        return _unknown(program_id, error="maximum inner instruction depth exceeded")

    result = _decode_single(schema_resolver, node.call, message, max_type_depth)
    if node.children:
        result["inner_instructions"] = [
            _decode_node(schema_resolver, child, message, depth + 1, max_inner_depth, max_type_depth)
            for child in node.children
        ]
    return result


def decode_instruction(
    schema_resolver: SchemaResolver,
    compiled_call: CompiledInstruction,
    message: Message,
    inner_calls: Optional[Sequence[CompiledInstruction]] = None,
    max_inner_depth: int = DEFAULT_MAX_INNER_DEPTH,
    max_type_depth: int = DEFAULT_MAX_DEPTH,
) -> Dict[str, Any]:
    """Decode one top-level call and the calls it triggered.

    Returns a dict with program id/name, instruction name, decoded args,
    validated account metas and ``inner_instructions`` (when any), or a
    degraded ``unknown`` marker.
    """
    root = CallNode(compiled_call, nest_inner_calls(inner_calls or []))
    return _decode_node(schema_resolver, root, message, 0, max_inner_depth, max_type_depth)


def decode_transaction(
    schema_resolver: SchemaResolver,
    message: Message,
    inner_calls: Optional[Mapping[int, Sequence[CompiledInstruction]]] = None,
    max_inner_depth: int = DEFAULT_MAX_INNER_DEPTH,
    max_type_depth: int = DEFAULT_MAX_DEPTH,
) -> List[Dict[str, Any]]:
    """Decode every top-level call of a message, in order."""
    inner_calls = inner_calls or {}
    return [
        decode_instruction(
            schema_resolver,
            call,
            message,
            inner_calls.get(i),
            max_inner_depth=max_inner_depth,
            max_type_depth=max_type_depth,
        )
        for i, call in enumerate(message.instructions)
    ]
