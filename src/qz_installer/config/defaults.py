"""Default configuration values for the installer."""

from __future__ import annotations

DEFAULT_CONFIG: dict[str, dict[str, object]] = {
    "installer": {
        "log_level": "info",
        "download_dir": "",
    },
    "release": {
        "owner": "qzind",
        "repo": "tray",
        "api_url": "https://api.github.com",
        "per_page": 100,
        "timeout": 30.0,
    },
    "lifecycle": {
        "stop_max_wait": 10,
        "poll_interval": 1.0,
        "start_grace": 3.0,
        "quit_grace": 2.0,
        "post_stop_settle": 2.0,
    },
    "certificate": {
        "override_url": "https://aprilboiz.github.io/qz-installer/override.crt",
        "secure_port": 8181,
        "probe_host": "google.com",
        "probe_port": 443,
    },
}
