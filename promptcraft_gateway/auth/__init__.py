"""
Auth Package - credential resolution for the Azure OpenAI backend.
"""

from promptcraft_gateway.auth.credentials import (
    AzureCliTokenSource,
    CommandResult,
    CommandRunner,
    CredentialResolver,
    ManagedIdentityTokenSource,
    is_azure_environment,
    is_cli_authenticated,
    is_cli_available,
    run_command,
)

__all__ = [
    "AzureCliTokenSource",
    "CommandResult",
    "CommandRunner",
    "CredentialResolver",
    "ManagedIdentityTokenSource",
    "is_azure_environment",
    "is_cli_authenticated",
    "is_cli_available",
    "run_command",
]
