"""HTTP client with retries for gateway and network probes."""
import time
import logging
import requests

logger = logging.getLogger("gwmonitor.http")


class APIError(Exception):
    """API request error with status code and response body."""
    def __init__(self, message, status_code=None, response_body=None, source=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body
        self.source = source


class HTTPClient:
    """HTTP client with retry logic and exponential backoff."""

    RETRYABLE_STATUS = {429, 500, 502, 503, 504}
    NON_RETRYABLE_STATUS = {400, 401, 403, 404}

    def __init__(self, base_url, timeout=5, max_retries=1, backoff_cap=10, source=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_cap = backoff_cap
        self.source = source or self.base_url
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "GatewayMonitor/1.0"})

    def get(self, path="", params=None):
        """Make a GET request with retry. Returns parsed JSON, or text for non-JSON bodies."""
        return self._request("GET", path, params)

    def url_for(self, path=""):
        return f"{self.base_url}/{path.lstrip('/')}" if path else self.base_url

    def probe(self, path=""):
        """Single GET without retries: (ok, latency_ms, body, error)."""
        url = self.url_for(path)
        start = time.monotonic()
        try:
            resp = self.session.get(url, timeout=self.timeout)
            latency = int((time.monotonic() - start) * 1000)
            if resp.status_code != 200:
                return False, latency, None, f"HTTP {resp.status_code}"
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            return True, latency, body, None
        except requests.exceptions.RequestException as e:
            latency = int((time.monotonic() - start) * 1000)
            return False, latency, None, str(e)

    def _request(self, method, path, params=None):
        url = self.url_for(path)

        last_error = None
        for attempt in range(self.max_retries + 1):
            try:
                start = time.monotonic()
                resp = self.session.request(method, url, params=params, timeout=self.timeout)
                latency = int((time.monotonic() - start) * 1000)
                logger.debug(f"{method} {url} → {resp.status_code} ({latency}ms)")

                if resp.status_code == 200:
                    try:
                        return resp.json()
                    except ValueError:
                        return resp.text

                if resp.status_code in self.NON_RETRYABLE_STATUS:
                    raise APIError(
                        f"HTTP {resp.status_code} from {url}",
                        status_code=resp.status_code,
                        response_body=resp.text,
                        source=self.source,
                    )

                if resp.status_code in self.RETRYABLE_STATUS:
                    retry_after = resp.headers.get("Retry-After")
                    wait = float(retry_after) if retry_after else min(2 ** attempt, self.backoff_cap)
                    logger.warning(f"Retryable {resp.status_code} from {url}, waiting {wait:.1f}s (attempt {attempt + 1})")
                    last_error = APIError(f"HTTP {resp.status_code}", status_code=resp.status_code, source=self.source)
                    if attempt < self.max_retries:
                        time.sleep(wait)
                    continue

                raise APIError(f"Unexpected HTTP {resp.status_code}", status_code=resp.status_code, source=self.source)

            except requests.exceptions.RequestException as e:
                logger.warning(f"Request error for {url}: {e} (attempt {attempt + 1})")
                last_error = APIError(str(e), source=self.source)
                if attempt < self.max_retries:
                    time.sleep(min(2 ** attempt, self.backoff_cap))

        raise last_error or APIError(f"Max retries exceeded for {url}", source=self.source)

    def close(self):
        self.session.close()
