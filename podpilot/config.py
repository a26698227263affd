"""Configuration, presets and .env loading for PodPilot."""
import json
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

from .errors import ConfigError

# .env in the working directory first, then the one in the config dir
load_dotenv(Path.cwd() / ".env")

CONFIG_DIR = Path(os.environ.get("PODPILOT_HOME", Path.home() / ".podpilot"))
load_dotenv(CONFIG_DIR / ".env")

CONFIG_FILE = "config.json"
PRESETS_FILE = "presets.json"
MANAGED_PODS_FILE = "managed_pods.json"

# Built-in pod defaults (lowest precedence)
DEFAULTS = {
    "gpu_type": "NVIDIA RTX A4000",
    "gpu_count": 1,
    "container_disk_size": 10,
    "volume_size": 20,
    "image": "runpod/pytorch:latest",
    "timeout": 30,  # minutes until auto-termination
    "team_id": None,
}
SPEC_KEYS = tuple(DEFAULTS)

# Pod creation
POD_NAME = "podpilot"
POD_PORTS = "22/tcp,8888/http"
VOLUME_MOUNT_PATH = "/workspace"

# Readiness polling (seconds)
POLL_INTERVAL = 5
RUNNING_TIMEOUT = 300
SSH_TIMEOUT = 120
SSH_CONNECT_TIMEOUT = 5

# SSH configuration
SSH_KEY_PATH = Path(os.environ.get(
    "SSH_KEY_PATH", str(Path.home() / ".ssh" / "id_ed25519")
))


def ssh_options(connect_timeout=None):
    """SSH/SCP options shared by every remote call.

    Host key checking is off since pod addresses are recycled.
    """
    opts = [
        "-o", "StrictHostKeyChecking=no",
        "-o", "UserKnownHostsFile=/dev/null",
        "-o", "LogLevel=ERROR",
    ]
    if connect_timeout:
        opts += ["-o", f"ConnectTimeout={connect_timeout}"]
    if SSH_KEY_PATH.exists():
        opts += ["-i", str(SSH_KEY_PATH)]
    return opts


def read_public_key():
    """Return the SSH public key to install on new pods, or None."""
    pub_key_path = SSH_KEY_PATH.with_suffix(".pub")
    if not pub_key_path.exists():
        return None
    return pub_key_path.read_text().strip()


def config_path(name, config_dir=None):
    """Path of a file in the config directory, creating the directory."""
    directory = Path(config_dir) if config_dir else CONFIG_DIR
    directory.mkdir(parents=True, exist_ok=True)
    return directory / name


def read_json(path, default):
    """Load JSON from path; a missing or corrupt file yields default."""
    path = Path(path)
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text())
    except (json.JSONDecodeError, UnicodeDecodeError):
        return default


def write_json(path, data):
    """Write JSON to path (atomic write).

    Each call gets its own temp file so concurrent writers never
    rename each other's output away.
    """
    path = Path(path)
    with tempfile.NamedTemporaryFile(
        "w", dir=path.parent, prefix=path.stem + ".", suffix=".tmp", delete=False
    ) as tmp:
        tmp.write(json.dumps(data, indent=2))
    os.replace(tmp.name, path)


def load_config(config_dir=None):
    """Load the user configuration, falling back to built-in defaults."""
    data = read_json(config_path(CONFIG_FILE, config_dir), None)
    if not isinstance(data, dict):
        return {"api_key": None, "defaults": dict(DEFAULTS)}
    data.setdefault("api_key", None)
    data["defaults"] = merge_spec(DEFAULTS, data.get("defaults"))
    return data


def save_config(config, config_dir=None):
    """Persist the whole configuration dict."""
    write_json(config_path(CONFIG_FILE, config_dir), config)
    return config


def update_config(key, value, config_dir=None):
    """Set one top-level configuration key and save."""
    config = load_config(config_dir)
    config[key] = value
    return save_config(config, config_dir)


def list_presets(config_dir=None):
    """Return all saved presets as a name -> settings dict."""
    presets = read_json(config_path(PRESETS_FILE, config_dir), {})
    return presets if isinstance(presets, dict) else {}


def load_preset(name, config_dir=None):
    """Return the named preset, or None if it does not exist."""
    return list_presets(config_dir).get(name)


def save_preset(name, values, config_dir=None):
    """Save the non-empty resource settings in values under name."""
    presets = list_presets(config_dir)
    presets[name] = {k: v for k, v in values.items()
                     if k in SPEC_KEYS and v is not None}
    write_json(config_path(PRESETS_FILE, config_dir), presets)
    return presets


def get_api_key(config_dir=None):
    """Return the RunPod API key from the environment or the config file."""
    key = os.environ.get("RUNPOD_API_KEY") or load_config(config_dir).get("api_key")
    if not key:
        raise ConfigError(
            "No RunPod API key found.\n"
            "  Set it with: podpilot config --api-key YOUR_KEY\n"
            "  Or set the RUNPOD_API_KEY environment variable"
        )
    return key


def merge_spec(*layers):
    """Merge settings layers, later layers winning.

    None layers are skipped and None values never override.
    """
    merged = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if value is not None:
                merged[key] = value
    return merged


def resolve_settings(options=None, preset=None, config_dir=None):
    """Merge defaults < config defaults < preset < explicit options."""
    preset_values = None
    if preset:
        preset_values = load_preset(preset, config_dir)
        if preset_values is None:
            raise ConfigError(f"Unknown preset: {preset}")
    config = load_config(config_dir)
    explicit = {k: v for k, v in (options or {}).items() if k in SPEC_KEYS}
    settings = merge_spec(DEFAULTS, config["defaults"], preset_values, explicit)
    settings.setdefault("team_id", None)
    return settings
