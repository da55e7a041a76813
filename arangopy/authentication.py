# Copyright DataStax, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
# http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from typing import Any

from typing_extensions import override

from arangopy.settings.defaults import (
    DEFAULT_AUTH_BASIC_PREFIX,
    DEFAULT_AUTH_BEARER_PREFIX,
    FIXED_SECRET_PLACEHOLDER,
    SECRETS_REDACT_CHAR,
    SECRETS_REDACT_ENDING,
    SECRETS_REDACT_ENDING_LENGTH,
)


def coerce_token_provider(
    token: str | TokenProvider | None,
) -> TokenProvider:
    if isinstance(token, TokenProvider):
        return token
    else:
        return StaticTokenProvider(token)


def _redact_secret(secret: str, max_length: int, hide_if_short: bool = True) -> str:
    """
    Return a shortened-if-necessary version of a 'secret' string (with ellipsis).

    Args:
        secret: a secret string to redact
        max_length: if the secret and the fixed ending exceed this size,
            shortening takes place.
        hide_if_short: this controls what to do when the input secret is
            shorter, i.e. when no shortening takes place.
            if False, the secret is returned as-is;
            If True, a masked string is returned of the same length as secret.

    Returns:
        a 'redacted' form of the secret string as per the rules outlined above.
    """
    secret_len = len(secret)
    if secret_len + SECRETS_REDACT_ENDING_LENGTH > max_length:
        return (
            secret[: max_length - SECRETS_REDACT_ENDING_LENGTH] + SECRETS_REDACT_ENDING
        )
    else:
        if hide_if_short:
            return SECRETS_REDACT_CHAR * len(secret)
        else:
            return secret


class TokenProvider(ABC):
    """
    Abstract base class for a token provider.
    The relevant method in this interface is returning a string to use as
    the value of the authorization header.

    The __str__ / __repr__ methods are NOT to be used as source of tokens:
    use get_token instead.
    """

    def __eq__(self, other: Any) -> bool:
        my_token = self.get_token()
        if isinstance(other, TokenProvider):
            if my_token is None:
                return other.get_token() is None
            else:
                return other.get_token() == my_token
        else:
            return False

    @abstractmethod
    def __repr__(self) -> str: ...

    def __bool__(self) -> bool:
        return self.get_token() is not None

    @abstractmethod
    def get_token(self) -> str | None:
        """
        Produce a string for direct use as authorization header value in
        subsequent requests, or None for unauthenticated access.
        """
        ...


class StaticTokenProvider(TokenProvider):
    """
    A provider wrapping a literal JWT token, sent as a bearer token.

    Args:
        token: a JWT access token, or None for unauthenticated access.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import StaticTokenProvider
        >>> database = ArangoClient().get_database(
        ...     "http://localhost:8529",
        ...     token=StaticTokenProvider("eyJhbGciOi..."),
        ... )
    """

    def __init__(self, token: str | None) -> None:
        self.token = token

    @override
    def __repr__(self) -> str:
        if self.token is None:
            return "(none)"
        else:
            return f"{self.__class__.__name__}({_redact_secret(self.token, 15)})"

    @override
    def get_token(self) -> str | None:
        if self.token is None:
            return None
        return f"{DEFAULT_AUTH_BEARER_PREFIX}{self.token}"


class UsernamePasswordTokenProvider(TokenProvider):
    """
    A token provider encoding username/password-based authentication,
    i.e. HTTP basic authentication.

    Args:
        username: the username for accessing the database.
        password: the corresponding password.

    Example:
        >>> from arangopy import ArangoClient
        >>> from arangopy.authentication import UsernamePasswordTokenProvider
        >>> database = ArangoClient().get_database(
        ...     "http://localhost:8529",
        ...     token=UsernamePasswordTokenProvider("root", "openSesame"),
        ... )
    """

    def __init__(self, username: str, password: str) -> None:
        self.username = username
        self.password = password
        credentials = base64.b64encode(f"{username}:{password}".encode()).decode()
        self.token = f"{DEFAULT_AUTH_BASIC_PREFIX}{credentials}"

    @override
    def __repr__(self) -> str:
        _r_username = _redact_secret(self.username, 6)
        _r_password = FIXED_SECRET_PLACEHOLDER
        return f'{self.__class__.__name__}("username={_r_username}, password={_r_password}")'

    @override
    def get_token(self) -> str:
        return self.token
