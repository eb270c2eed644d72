"""Jenkins adapter: remote build trigger and build list of one project."""

from typing import Any, Dict, List

import requests

from mergebot.adapters.base import BuildRunner, BuildRunnerError
from mergebot.models import Build

BUILDS_TREE = "builds[number,url,actions[parameters[name,value]],building,result]"


def _parameters_from_actions(actions: List[Any] | None) -> Dict[str, str]:
    """Collect name -> value from every action carrying a parameters list.

    Actions of manually started builds are often empty objects or null.
    """
    params: Dict[str, str] = {}
    for action in actions or []:
        if not isinstance(action, dict):
            continue
        for param in action.get("parameters") or []:
            if not isinstance(param, dict) or "name" not in param:
                continue
            value = param.get("value")
            params[param["name"]] = "" if value is None else str(value)
    return params


def _build_from_api(data: Dict[str, Any]) -> Build:
    return Build(
        number=data.get("number"),
        url=data.get("url") or "",
        building=bool(data.get("building")),
        result=data.get("result"),
        parameters=_parameters_from_actions(data.get("actions")),
    )


class JenkinsClient(BuildRunner):
    """Jenkins implementation for a single parameterized project."""

    def __init__(
        self,
        base_url: str,
        project: str,
        token: str | None = None,
        user: str | None = None,
        api_token: str | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._project = project
        self._token = token
        self._session = requests.Session()
        if user and api_token:
            self._session.auth = (user, api_token)

    @property
    def job_url(self) -> str:
        return f"{self._base_url}/job/{self._project}"

    def _get(self, path: str, params: Dict[str, Any]) -> requests.Response:
        url = f"{self.job_url}/{path}"
        try:
            resp = self._session.request("GET", url, params=params, timeout=30)
        except requests.RequestException as e:
            raise BuildRunnerError(f"GET {path}: {e}") from e
        if resp.status_code >= 400:
            raise BuildRunnerError(f"{resp.status_code}: {resp.text or resp.reason}")
        return resp

    def trigger_build(self, parameters: Dict[str, Any]) -> None:
        params: Dict[str, Any] = {}
        if self._token:
            params["token"] = self._token
        params.update(parameters)
        self._get("buildWithParameters", params)

    def list_builds(self) -> List[Build]:
        resp = self._get("api/json", {"tree": BUILDS_TREE})
        try:
            data = resp.json() or {}
        except ValueError as e:
            raise BuildRunnerError(f"Invalid build list JSON: {e}") from e
        return [_build_from_api(b) for b in data.get("builds") or [] if isinstance(b, dict)]
