"""Account and region of a pipeline or of the resource an action acts on"""
from dataclasses import dataclass
from typing import Optional

from aws_cdk import IResource, Stack, Token
from constructs import IConstruct


def _concrete(value: Optional[str]) -> Optional[str]:
    """Drop values that are still unresolved CDK tokens"""
    if value is None or Token.is_unresolved(value):
        return None
    return value


@dataclass(frozen=True)
class Environment:
    """
    Account and region pair.

    Either part may be None when it is unknown at synthesis time
    (environment-agnostic stacks). Unknown parts never count as a mismatch.
    """
    account: Optional[str] = None
    region: Optional[str] = None

    @classmethod
    def of(cls, scope: IConstruct) -> "Environment":
        """Environment of the stack containing the given construct"""
        stack = Stack.of(scope)
        return cls(account=_concrete(stack.account), region=_concrete(stack.region))

    @classmethod
    def of_resource(cls, resource: IResource) -> "Environment":
        """Environment the resource lives in, which may differ from its stack for imports"""
        return cls(
            account=_concrete(resource.env.account),
            region=_concrete(resource.env.region)
        )

    def with_overrides(
        self,
        account: Optional[str] = None,
        region: Optional[str] = None
    ) -> "Environment":
        return Environment(
            account=account if account is not None else self.account,
            region=region if region is not None else self.region
        )

    def inherit(self, parent: "Environment") -> "Environment":
        """Fill the unknown parts from the enclosing environment"""
        return parent.with_overrides(account=self.account, region=self.region)

    def is_cross_account(self, other: "Environment") -> bool:
        return (
            self.account is not None
            and other.account is not None
            and self.account != other.account
        )

    def is_cross_region(self, other: "Environment") -> bool:
        return self.region is not None and self.region != other.region
