"""Account-meta validation: declared instruction roles vs. observed accounts.

Roles and accounts are consumed in lock-step after flattening nested role
groups. Capability mismatches annotate the entry; they never abort.

Optional roles are resolved in declaration order:

- an optional role whose account is the owning program id is absent
  (Anchor passes the program id in place of ``None``); its slot is consumed;
- otherwise, when no more accounts remain than the required roles still to
  match, the optional role is absent and no account is consumed.
"""

from typing import Iterable, List, NamedTuple, Optional, Sequence, Union

from anchorlens.codes import AccountMetaStatus
from anchorlens.contracts import AccountMetaEntry, AccountMetaValidation
from .idl import AccountRole, AccountRoleGroup


class ObservedAccount(NamedTuple):
    """An account as referenced by a compiled instruction."""
    address: str
    is_signer: bool
    is_writable: bool


def flatten_roles(roles: Iterable[Union[AccountRole, AccountRoleGroup]]) -> List[AccountRole]:
    """Flatten nested role groups into leaf roles, preserving declaration order."""
    flat: List[AccountRole] = []
    stack = [iter(roles)]
    while stack:
        role = next(stack[-1], None)
        if role is None:
            stack.pop()
        elif isinstance(role, AccountRoleGroup):
            stack.append(iter(role.roles))
        else:
            flat.append(role)
    return flat


def compare_capabilities(role: AccountRole, observed: ObservedAccount) -> AccountMetaStatus:
    """Status for one matched pair. Extra privilege is not a mismatch."""
    missing_signer = role.signer and not observed.is_signer
    missing_writable = role.writable and not observed.is_writable
    if missing_signer and missing_writable:
        return AccountMetaStatus.MISSING_SIGNER_AND_WRITABLE
    if missing_signer:
        return AccountMetaStatus.MISSING_SIGNER
    if missing_writable:
        return AccountMetaStatus.MISSING_WRITABLE
    return AccountMetaStatus.OK


def _entry(role: AccountRole, observed: ObservedAccount) -> AccountMetaEntry:
    return AccountMetaEntry(
        name=role.name,
        address=observed.address,
        is_signer=observed.is_signer,
        is_writable=observed.is_writable,
        expected_signer=role.signer,
        expected_writable=role.writable,
        status=compare_capabilities(role, observed),
    )


def validate_account_metas(
    roles: Sequence[Union[AccountRole, AccountRoleGroup]],
    actual: Sequence[ObservedAccount],
    program_id: Optional[str] = None,
) -> AccountMetaValidation:
    """Match observed accounts to declared roles and annotate mismatches.

    Returns one entry per resolved role (declared roles minus absent
    optionals) in declaration order. Accounts left after the last role are
    reported as ``remaining``.
    """
    flat = flatten_roles(roles)

    # required_after[i]: non-optional roles strictly after position i
    required_after = [0] * len(flat)
    count = 0
    for i in range(len(flat) - 1, -1, -1):
        required_after[i] = count
        if not flat[i].optional:
            count += 1

    entries: List[AccountMetaEntry] = []
    pos = 0
    for i, role in enumerate(flat):
        left = len(actual) - pos
        if role.optional:
            if left == 0:
                continue
            if program_id is not None and actual[pos].address == program_id:
                pos += 1
                continue
            if left <= required_after[i]:
                continue
            entries.append(_entry(role, actual[pos]))
            pos += 1
            continue

        if left == 0:
            entries.append(AccountMetaEntry(
                name=role.name,
                address=None,
                expected_signer=role.signer,
                expected_writable=role.writable,
                status=AccountMetaStatus.NOT_PROVIDED,
            ))
            continue
        entries.append(_entry(role, actual[pos]))
        pos += 1

    remaining = [
        AccountMetaEntry(
            name=f"remaining_{n}",
            address=observed.address,
            is_signer=observed.is_signer,
            is_writable=observed.is_writable,
        )
        for n, observed in enumerate(actual[pos:])
    ]
    return AccountMetaValidation(entries=entries, remaining=remaining)
