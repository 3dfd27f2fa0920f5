"""IAM policy manipulation."""

from __future__ import annotations

from dataclasses import replace

from .models import AccessPolicy, Binding


def add_binding(policy: AccessPolicy, role: str, principal: str) -> AccessPolicy:
    """Return a copy of the policy with the principal bound to the role.

    Only the unconditional binding of a role is considered; conditional
    bindings are carried over untouched. Adding a principal that is already
    a member returns an equal policy. The etag and version are preserved so
    the result can be written back as a compare-and-swap.
    """
    bindings = list(policy.bindings)
    for idx, binding in enumerate(bindings):
        if binding.role != role or binding.condition is not None:
            continue
        if principal in binding.members:
            return policy
        bindings[idx] = replace(binding, members=binding.members + (principal,))
        return replace(policy, bindings=tuple(bindings))

    bindings.append(Binding(role=role, members=(principal,)))
    return replace(policy, bindings=tuple(bindings))
