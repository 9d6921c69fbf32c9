"""Registry of the Slack apps that send slash commands to the gateway."""

from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class AppRegistration(BaseModel):
    """A Slack app known to the gateway."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    app_id: str = Field(..., alias="appID")
    # Secret used to verify requests signed by Slack on the app's behalf.
    signing_secret: str = Field("", alias="appSigningSecret")
    # Bearer token used to post messages as the app.
    api_token: str = Field("", alias="apiToken")


_REGISTRATIONS = TypeAdapter(list[AppRegistration])


class AppRegistry(Mapping[str, AppRegistration]):
    """Read-only mapping of app ID to :class:`AppRegistration`."""

    def __init__(self, registrations: Iterable[AppRegistration] = ()) -> None:
        self._apps = MappingProxyType({app.app_id: app for app in registrations})

    def __getitem__(self, app_id: str) -> AppRegistration:
        return self._apps[app_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._apps)

    def __len__(self) -> int:
        return len(self._apps)

    def signing_secret(self, app_id: str) -> str:
        """Return the app's signing secret, or an empty string for unknown apps."""

        app = self._apps.get(app_id)
        return app.signing_secret if app is not None else ""


def load_app_registry(path: str | Path) -> AppRegistry:
    """Load the registry from a JSON array of app records."""

    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"file {file_path} does not exist")
    with file_path.open("r", encoding="utf-8") as fp:
        data = json.load(fp)
    return AppRegistry(_REGISTRATIONS.validate_python(data))
