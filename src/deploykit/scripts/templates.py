"""Remote script templates.

Every template here is safe to run repeatedly with the same arguments:
checks come before changes, and teardown steps treat a missing target as
already done. Installer chatter goes to stderr so the last stdout line can
carry a status word.
"""

from __future__ import annotations

from .base import RemoteCommandScript

PING = RemoteCommandScript(name="ping", body="echo ok\n")

HOST_FACTS = RemoteCommandScript(
    name="host-facts",
    body="""\
echo "hostname=$(hostname)"
echo "os_release=$( (. /etc/os-release 2>/dev/null && echo "$PRETTY_NAME") || uname -sr)"
echo "architecture=$(uname -m)"
if command -v apt-get >/dev/null 2>&1; then echo "has_apt=yes"; else echo "has_apt=no"; fi
if command -v systemctl >/dev/null 2>&1; then echo "has_systemd=yes"; else echo "has_systemd=no"; fi
""",
)

# --- provisioning -----------------------------------------------------------

ENSURE_DOCKER = RemoteCommandScript(
    name="ensure-docker",
    body="""\
if command -v docker >/dev/null 2>&1; then
  echo present
  exit 0
fi
if ! command -v curl >/dev/null 2>&1; then
  sudo DEBIAN_FRONTEND=noninteractive apt-get update -y >&2
  sudo DEBIAN_FRONTEND=noninteractive apt-get install -y curl >&2
fi
curl -fsSL https://get.docker.com | sudo sh >&2
sudo usermod -aG docker "$(id -un)" >&2 || true
echo installed
""",
)

ENSURE_COMPOSE = RemoteCommandScript(
    name="ensure-compose",
    params=("compose_version",),
    body="""\
if sudo docker compose version >/dev/null 2>&1; then
  echo "present docker compose"
  exit 0
fi
if command -v docker-compose >/dev/null 2>&1; then
  echo "present docker-compose"
  exit 0
fi
os="$(uname -s | tr '[:upper:]' '[:lower:]')"
arch="$(uname -m)"
sudo curl -fsSL "https://github.com/docker/compose/releases/download/$1/docker-compose-${os}-${arch}" \\
  -o /usr/local/bin/docker-compose >&2
sudo chmod +x /usr/local/bin/docker-compose
echo "installed docker-compose"
""",
)

ENSURE_NGINX = RemoteCommandScript(
    name="ensure-nginx",
    body="""\
if command -v nginx >/dev/null 2>&1 || [ -x /usr/sbin/nginx ]; then
  echo present
  exit 0
fi
sudo DEBIAN_FRONTEND=noninteractive apt-get update -y >&2
sudo DEBIAN_FRONTEND=noninteractive apt-get install -y nginx >&2
echo installed
""",
)

ENABLE_SERVICE = RemoteCommandScript(
    name="enable-service",
    params=("service",),
    body="""\
if ! command -v systemctl >/dev/null 2>&1; then
  echo "systemctl unavailable; leaving $1 as is" >&2
  exit 0
fi
sudo systemctl enable "$1" >&2
sudo systemctl start "$1"
""",
)

REPORT_VERSIONS = RemoteCommandScript(
    name="report-versions",
    body="""\
sudo docker --version || true
if sudo docker compose version >/dev/null 2>&1; then
  sudo docker compose version
else
  docker-compose --version || true
fi
sudo nginx -v 2>&1 || true
""",
)

# --- transfer ---------------------------------------------------------------

PREPARE_PROJECT_DIR = RemoteCommandScript(
    name="prepare-project-dir",
    params=("project_dir",),
    body="""\
sudo mkdir -p "$1"
sudo chown "$(id -un):$(id -gn)" "$1"
""",
)

# --- deployment -------------------------------------------------------------

# $3 is the compose command ("docker compose" or "docker-compose") and is
# split on purpose; callers only pass one of those two values.
STOP_COMPOSE = RemoteCommandScript(
    name="stop-compose",
    params=("project_dir", "compose_file", "compose_command"),
    body="""\
cd "$1" 2>/dev/null || { echo "project dir $1 absent; nothing to stop"; exit 0; }
if [ ! -f "$2" ]; then
  echo "no $2 in $1; nothing to stop"
  exit 0
fi
sudo $3 -f "$2" down --remove-orphans
""",
)

REMOVE_CONTAINER = RemoteCommandScript(
    name="remove-container",
    params=("container",),
    body="""\
if sudo docker ps -a --format '{{.Names}}' | grep -x "$1" >/dev/null; then
  sudo docker rm -f "$1"
else
  echo "no container named $1"
fi
""",
)

PRUNE = RemoteCommandScript(
    name="prune",
    body="""\
sudo docker container prune -f
sudo docker image prune -f
""",
)

UP_COMPOSE = RemoteCommandScript(
    name="up-compose",
    params=("project_dir", "compose_file", "compose_command"),
    body="""\
cd "$1"
sudo $3 -f "$2" up -d --build
""",
)

UP_DOCKERFILE = RemoteCommandScript(
    name="up-dockerfile",
    params=("project_dir", "image", "container", "port"),
    body="""\
cd "$1"
sudo docker build -t "$2" .
if sudo docker ps -a --format '{{.Names}}' | grep -x "$3" >/dev/null; then
  sudo docker rm -f "$3"
fi
sudo docker run -d --name "$3" --restart unless-stopped -p "0.0.0.0:$4:$4" "$2"
""",
)

CONTAINER_STATUS = RemoteCommandScript(
    name="container-status",
    body="sudo docker ps --format 'table {{.Names}}\\t{{.Status}}\\t{{.Ports}}'\n",
)

# --- reverse proxy ----------------------------------------------------------

INSTALL_SITE = RemoteCommandScript(
    name="install-site",
    params=("site_name", "config", "drop_default"),
    body="""\
available="/etc/nginx/sites-available/$1"
enabled="/etc/nginx/sites-enabled/$1"
tmp="$(mktemp)"
printf '%s' "$2" > "$tmp"
sudo install -m 0644 "$tmp" "$available"
rm -f "$tmp"
sudo ln -sfn "$available" "$enabled"
if [ "$3" = "yes" ] && [ -L /etc/nginx/sites-enabled/default ]; then
  sudo rm -f /etc/nginx/sites-enabled/default
fi
""",
)

TEST_PROXY_CONFIG = RemoteCommandScript(name="test-proxy-config", body="sudo nginx -t\n")

RELOAD_PROXY = RemoteCommandScript(
    name="reload-proxy",
    body="""\
if command -v systemctl >/dev/null 2>&1; then
  sudo systemctl reload nginx
else
  sudo nginx -s reload
fi
""",
)

REMOVE_SITE = RemoteCommandScript(
    name="remove-site",
    params=("site_name",),
    body="""\
sudo rm -f "/etc/nginx/sites-enabled/$1" "/etc/nginx/sites-available/$1"
""",
)

# --- validation -------------------------------------------------------------

LOOPBACK_CHECK = RemoteCommandScript(
    name="loopback-check",
    params=("port", "seconds"),
    body='curl -sS -m "$2" -o /dev/null "http://127.0.0.1:$1"\n',
)

DIAGNOSTICS = RemoteCommandScript(
    name="diagnostics",
    body="""\
echo "== running containers"
sudo docker ps --filter 'status=running' --format '{{.Names}}\\t{{.Status}}' || true
echo "== nginx journal"
sudo journalctl -u nginx --no-pager -n 50 || true
""",
)

# --- cleanup ----------------------------------------------------------------

TEARDOWN_COMPOSE = RemoteCommandScript(
    name="teardown-compose",
    params=("project_dir",),
    body="""\
cd "$1" 2>/dev/null || { echo "project dir $1 absent"; exit 0; }
for f in docker-compose.yml docker-compose.yaml compose.yml compose.yaml; do
  if [ -f "$f" ]; then
    if sudo docker compose version >/dev/null 2>&1; then
      sudo docker compose -f "$f" down --remove-orphans
    else
      sudo docker-compose -f "$f" down --remove-orphans
    fi
    exit 0
  fi
done
echo "no compose descriptor in $1"
""",
)

REMOVE_IMAGE = RemoteCommandScript(
    name="remove-image",
    params=("image",),
    body="""\
if sudo docker image inspect "$1" >/dev/null 2>&1; then
  sudo docker rmi -f "$1"
else
  echo "no image $1"
fi
""",
)

REMOVE_PROJECT_DIR = RemoteCommandScript(
    name="remove-project-dir",
    params=("project_dir",),
    body="""\
case "$1" in
  ""|/) echo "refusing to remove '$1'" >&2; exit 2 ;;
esac
sudo rm -rf -- "$1"
""",
)
