[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netlabs"
version = "0.1.0"
description = "Small networking tools: link emulator, file transfer, UDP backup, select-based chat, DNS lookups, a statistics server, a software router, ping and traceroute"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "networking",
    "sockets",
    "udp",
    "tcp",
    "router",
    "arp",
    "icmp",
    "ping",
    "traceroute",
    "dns",
    "checksum",
    "link-emulator",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
netlabs-cat = "netlabs.textfiles:main_cat"
netlabs-tac = "netlabs.textfiles:main_tac"
netlabs-link = "netlabs.link:main"
netlabs-send-file = "netlabs.filetransfer:main_send"
netlabs-recv-file = "netlabs.filetransfer:main_recv"
netlabs-window-send = "netlabs.window:main_send"
netlabs-window-recv = "netlabs.window:main_recv"
netlabs-udp-backup-client = "netlabs.udpbackup:main_client"
netlabs-udp-backup-server = "netlabs.udpbackup:main_server"
netlabs-select-chat-server = "netlabs.selectchat:main_server"
netlabs-select-chat-client = "netlabs.selectchat:main_client"
netlabs-dns = "netlabs.dnslookup:main"
netlabs-stats-server = "netlabs.stats:main_server"
netlabs-stats-client = "netlabs.stats:main_tcp_client"
netlabs-stats-send = "netlabs.stats:main_udp_sender"
netlabs-router = "netlabs.router:main"
netlabs-ping = "netlabs.ping:main"

[tool.hatch.build.targets.wheel]
packages = ["netlabs"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
