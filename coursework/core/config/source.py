import functools
import getpass
import os
import typing as t
from pathlib import Path

import pydantic as p
import yaml
from ansible.parsing.vault import VaultLib, VaultSecret
from pydantic_settings import PydanticBaseSettingsSource
from pydantic_settings import SettingsError

import coursework.lib.util as util
from coursework.model import DeploymentEnvironment

VaultPasswordVariable = "COURSEWORK_VAULT_PASSWORD"

# fields supplied by the caller at boot, never read from files
BootKeys = frozenset({"env", "root", "override"})


class CurrentState(t.TypedDict, total=False):
    root: t.Required[p.AnyUrl]
    env: t.Required[DeploymentEnvironment]


class SettingsCurrentState(CurrentState, total=False):
    override: t.Required[tuple[str, ...]]


def env_directory(root: p.AnyUrl, env: DeploymentEnvironment) -> list[Path]:
    """Directories to read, least specific first; the local environment reads only the root."""
    assert root.scheme == "file" and root.path is not None, "root is not a legible location of YAML files"
    paths = [Path(root.path)]
    if env is not DeploymentEnvironment.Local:
        paths.append(Path(root.path) / "env.d" / env.value)
    return paths


class SettingsSource(PydanticBaseSettingsSource):
    def __call__(self) -> dict[str, t.Any]:
        data: dict[str, t.Any] = {}

        for field_name, field in self.settings_cls.model_fields.items():
            try:
                field_value, field_key, value_is_complex = self.get_field_value(field, field_name)
                field_value = self.prepare_field_value(field_name, field, field_value, value_is_complex)
            except KeyError:
                continue
            except ValueError as e:
                raise SettingsError(f"error parsing value for field {field_name!r} from source {self!r}") from e
            except Exception as e:
                raise SettingsError(f"error getting value for field {field_name!r} from source {self!r}") from e

            data[field_key] = field_value
        return data

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        return value


class OverrideSettingsSource(SettingsSource):
    """`-o storage.persistent.echo=true` style overrides; values are parsed as YAML scalars."""

    @functools.cached_property
    def parsed_options(self) -> dict[str, t.Any]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        od: dict[str, t.Any] = {}
        for o in current_state.get("override", ()):
            if "=" not in o:
                raise ValueError(f"override must have the form key.path=value: {o!r}")
            k, v = [s.strip() for s in o.split("=", 1)]

            target = od
            path = k.split(".")
            for key in path[:-1]:
                target = target.setdefault(key, {})
            target[path[-1]] = yaml.safe_load(v)
        return od

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        if field_name in BootKeys or field_name not in self.parsed_options:
            raise KeyError(field_name)
        return self.parsed_options[field_name], field_name, False


class YAMLCascadingSettingsSource(SettingsSource):
    """Reads `<field>.yaml` from the config root, then from `env.d/<env>/`, merging the later over the earlier."""

    @functools.cached_property
    def load_paths(self) -> list[Path]:
        current_state = t.cast(SettingsCurrentState, self.current_state)
        return env_directory(current_state["root"], current_state["env"])

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        if field_name in BootKeys:
            raise KeyError(field_name)
        yamls: list[str] = []
        for path in self.load_paths:
            fn = path / f"{field_name}.yaml"
            if fn.exists():
                yamls.append(fn.read_text(encoding="utf8"))
        if not yamls:
            raise KeyError(field_name)
        return yamls, field_name, True

    def prepare_field_value(
        self, field_name: str, field: p.fields.FieldInfo, value: t.Any, value_is_complex: bool
    ) -> t.Any:
        if not value_is_complex:
            return super().prepare_field_value(field_name, field, value, value_is_complex)

        if not isinstance(value, list):
            raise ValueError(field_name)
        merged: dict[t.Any, t.Any] = {}
        for text in t.cast(list[str], value):
            loaded = yaml.safe_load(text) or {}
            merged = util.deep_update(merged, loaded)
        return merged


class AnsibleVaultSecretsSource(SettingsSource):
    """Decrypts `secrets.vault.yaml` from the most specific config directory, if one exists."""

    @functools.cached_property
    def load_path(self) -> Path:
        current_state = t.cast(CurrentState, self.current_state)
        return env_directory(current_state["root"], current_state["env"])[-1]

    @functools.cached_property
    def secrets(self) -> dict[str, t.Any]:
        current_state = t.cast(CurrentState, self.current_state)
        fn = "secrets.vault.yaml"
        vp = self.load_path / fn

        # no vault file, nothing to unlock
        if not vp.exists():
            return {}

        key = os.environ.get(VaultPasswordVariable)
        if key is None:
            key = getpass.getpass(f"provide vault key ({current_state['env'].value}:{fn}) ")

        # INFO: None is the vault-id -- if we start using a vault ID, we need to specify it here
        vault = VaultLib(secrets=[(None, VaultSecret(key.encode()))])
        with vp.open() as f:
            content = vault.decrypt(f.read())
        return yaml.safe_load(content) or {}

    def get_field_value(self, field: p.fields.FieldInfo, field_name: str) -> tuple[t.Any, str, bool]:
        # self.secrets needs root from current state, so boot keys are never looked up
        if field_name in BootKeys or field_name not in self.secrets:
            raise KeyError(field_name)
        return self.secrets[field_name], field_name, isinstance(self.secrets[field_name], dict)
