"""Build information used in the default User-Agent header."""

NAME = "hxclient"
VERSION = "0.1.0"
URL = "https://github.com/hxclient/hxclient"
USER_AGENT_URL = "+" + URL
