"""Authentication flow for the scx CLI."""

from __future__ import annotations

import time
import webbrowser
from collections.abc import Callable
from datetime import UTC, datetime

import httpx

from scx_cli.client import ApiClient, error_message
from scx_cli.config import Config

DEFAULT_POLL_INTERVAL = 5
SLOW_DOWN_SECONDS = 5


def mask_key(api_key: str) -> str:
    return f"{api_key[:8]}{'*' * 8}"


def login(
    config: Config,
    client: ApiClient | None = None,
    sleep: Callable[[float], None] = time.sleep,
    open_browser: Callable[[str], object] = webbrowser.open,
) -> bool:
    """
    Perform device authorization flow.

    Returns True if successful, False otherwise.
    """
    owns_client = client is None
    client = client or ApiClient(config.app_url)

    try:
        # Start auth flow
        try:
            start = client.post("/api/cli/device")
        except httpx.HTTPStatusError as e:
            print(f"Failed to start login flow: {error_message(e)}")
            return False
        except httpx.HTTPError:
            print(f"Failed to connect to {config.app_url}")
            return False

        device_code = start["deviceCode"]
        user_code = start["userCode"]
        interval = start.get("interval") or DEFAULT_POLL_INTERVAL
        expires_at = datetime.fromisoformat(start["expiresAt"])
        verify_url = f"{start['verifyUrl']}?code={user_code}"

        print()
        print(f"  Opening: {verify_url}")
        print(f"  Code:    {user_code}")
        print()
        print("  If the browser didn't open, copy and paste the URL above.")
        print()

        open_browser(verify_url)

        # Poll until approved, expired, or the code's lifetime runs out
        print("Waiting for authorization...", end="", flush=True)
        budget = (expires_at - datetime.now(UTC)).total_seconds()
        waited = 0.0

        while waited < budget:
            sleep(interval)
            waited += interval

            try:
                poll_res = client.post("/api/cli/token", {"deviceCode": device_code})
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    print(" failed")
                    print("Device code not recognised. Run `scx login` again.")
                    return False
                if e.response.status_code == 429:
                    interval += SLOW_DOWN_SECONDS
                continue
            except httpx.HTTPError:
                # Network error, keep polling
                continue

            status = poll_res.get("status")

            if status == "approved" and poll_res.get("apiKey"):
                config.api_key = poll_res["apiKey"]
                print(" done")
                print("Logged in!")
                print(f"API key saved to {config.config_file}")
                return True

            if status == "expired":
                print(" expired")
                print("Code expired. Run `scx login` again.")
                return False

            # Still pending
            print(".", end="", flush=True)

        print(" timeout")
        print("Code expired. Run `scx login` again.")
        return False

    finally:
        if owns_client:
            client.close()


def logout(config: Config) -> bool:
    """Remove the saved API key. Not being logged in is not an error."""
    if not config.is_authenticated:
        print("Not logged in.")
        return True

    config.api_key = None
    print("Logged out.")
    return True


def save_token(config: Config, api_key: str) -> bool:
    """Store an API key created in the web app."""
    api_key = api_key.strip()
    if not api_key:
        print("Error: API key is empty")
        return False

    config.api_key = api_key
    print("API key saved.")
    return True


def set_endpoint(config: Config, url: str | None) -> bool:
    """Show, set, or reset the data API endpoint."""
    if not url:
        print(config.custom_endpoint or "Using default endpoint.")
        return True

    if url == "reset":
        config.endpoint = None
        print("Endpoint reset to default.")
        return True

    config.endpoint = url.strip()
    print(f"Endpoint updated to {config.endpoint}")
    return True


def whoami(config: Config, client: ApiClient | None = None) -> bool:
    """
    Show the configured URLs and key, and check the key against the server.

    Returns False if a saved key is rejected or the server is unreachable.
    """
    print(f"App URL:  {config.app_url}")
    print(f"Endpoint: {config.endpoint}")

    if not config.is_authenticated:
        print("API Key:  not set")
        return True

    print(f"API Key:  {mask_key(config.api_key)}")

    owns_client = client is None
    client = client or ApiClient(config.app_url, config.api_key)
    try:
        user = client.get("/auth/me")
    except httpx.HTTPStatusError as e:
        print(f"Account:  rejected ({error_message(e)}). Run `scx login` again.")
        return False
    except httpx.HTTPError:
        print(f"Account:  could not reach {config.app_url}")
        return False
    finally:
        if owns_client:
            client.close()

    print(f"Account:  {user['email']}")
    return True
