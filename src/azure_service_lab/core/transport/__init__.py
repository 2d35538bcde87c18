"""
Transport core shared by every service caller.

    credentials: ClientSecretCredential, ApiKeyCredential, SharedKeyCredential
    client:      ApiClient - serialize, authenticate, send, decode
    poller:      LROPoller - submit once, poll until terminal
    pager:       Pager - lazy iteration over nextLink pages
    errors:      AzureLabError and its subclasses
"""

from .client import ApiClient, ApiResponse
from .credentials import ApiKeyCredential, ClientSecretCredential, SharedKeyCredential
from .errors import (AzureLabError, AuthError, DecodeError, HTTPError, OperationCanceled,
                     OperationFailed, PagerExhausted, PollingAbandoned, TransientNetworkError)
from .pager import Page, Pager
from .poller import Canceled, Failed, LROPoller, OperationHandle, OperationState, Succeeded

__all__ = [
    # Client
    'ApiClient', 'ApiResponse',
    # Credentials
    'ApiKeyCredential', 'ClientSecretCredential', 'SharedKeyCredential',
    # Long-running operations
    'LROPoller', 'OperationHandle', 'OperationState', 'Succeeded', 'Failed', 'Canceled',
    # Paging
    'Page', 'Pager',
    # Errors
    'AzureLabError', 'AuthError', 'DecodeError', 'HTTPError', 'OperationCanceled',
    'OperationFailed', 'PagerExhausted', 'PollingAbandoned', 'TransientNetworkError',
]
