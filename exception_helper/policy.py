"""
Thread-scoped registry of active policies.

A policy is a named marker whose presence in the calling thread's registry
means "this behaviour is currently active here". Each thread works on its
own registry; a thread other than the main thread receives a copy of the
main thread's registry the first time it touches it, and from then on the
two evolve independently.

Every Policy subclass is its own namespace with its own lock and registries,
so policies of unrelated subclasses never collide even when names match.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, Optional

from exception_helper.logging_config import get_logger

logger = get_logger(__name__)


class Policy:
    """Named policy that can be instituted in, and revoked from, the calling thread"""

    _lock = threading.Lock()
    _local = threading.local()
    _root_policies: Optional[Dict[Hashable, 'Policy']] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls._lock = threading.Lock()
        cls._local = threading.local()
        cls._root_policies = None

    def __init__(self, name: Hashable):
        self._name = name

    @property
    def name(self) -> Hashable:
        return self._name

    def __repr__(self) -> str:
        return f"<{self.namespace()} name={self._name!r}>"

    @classmethod
    def namespace(cls) -> str:
        return f"{cls.__module__}.{cls.__qualname__}"

    @classmethod
    def _policies(cls) -> Dict[Hashable, 'Policy']:
        """Registry for the calling thread, forked from the main thread on first access"""
        policies = getattr(cls._local, "policies", None)
        if policies is not None:
            return policies

        # The root registry has to exist before any other thread can copy it
        with cls._lock:
            if cls._root_policies is None:
                cls._root_policies = {}
            if threading.current_thread() is threading.main_thread():
                policies = cls._root_policies
            else:
                policies = dict(cls._root_policies)
                logger.debug(
                    f"Forked {len(policies)} {cls.namespace()} policies for thread "
                    f"{threading.current_thread().name}"
                )
            cls._local.policies = policies

        return policies

    @classmethod
    def reset_policies(cls) -> None:
        """
        Forget the calling thread's registry

        Called from the main thread this also drops the root registry, so
        threads forking afterwards start empty. Threads that already forked
        keep their copies.
        """
        with cls._lock:
            cls._local.policies = None
            if threading.current_thread() is threading.main_thread():
                cls._root_policies = None

    @classmethod
    def institute_policy(cls, policy: 'Policy') -> bool:
        """Put policy in effect unless a policy of the same name already is"""
        policies = cls._policies()
        if policy.name in policies:
            return False
        policies[policy.name] = policy
        return True

    @classmethod
    def policy_in_effect(cls, policy: 'Policy') -> bool:
        """True if this exact policy instance is in effect for the calling thread"""
        return cls._policies().get(policy.name) is policy

    @classmethod
    def revoke_policy(cls, policy: 'Policy') -> bool:
        """Remove policy if this exact instance is in effect"""
        if not cls.policy_in_effect(policy):
            return False
        del cls._policies()[policy.name]
        return True

    def in_effect(self) -> bool:
        return type(self).policy_in_effect(self)

    def institute(self) -> bool:
        return type(self).institute_policy(self)

    def revoke(self) -> bool:
        return type(self).revoke_policy(self)

    @contextmanager
    def applied(self) -> Iterator[bool]:
        """
        Institute the policy for the duration of a block

        Yields True when this call instituted the policy, False when a policy
        of the same name was already in effect. Only a policy instituted here
        is revoked on exit, so nested use leaves the outer holder in place.
        """
        instituted = self.institute()
        try:
            yield instituted
        finally:
            if instituted:
                self.revoke()
