"""WebUntis JSON-RPC client"""
import base64
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..errors import AuthError, FetchError
from ..storage.models import Entity, EntityType, Lesson, Session, Timegrid, TimegridDay
from ..utils.logger import setup_logger

logger = setup_logger(__name__)

# JSON-RPC error code for requests made without a valid session
NOT_AUTHENTICATED = -8520

SHORT_DATA_FIELDS = ["id", "name", "longname"]


class UntisClient:
    """Client for the WebUntis JSON-RPC API"""

    def __init__(
        self,
        school: str,
        username: str,
        password: str,
        base_url: str,
        client_name: str = "untis-watch",
        timeout: int = 30
    ):
        """
        Initialize WebUntis client

        Args:
            school: School name as used in the WebUntis login URL
            username: WebUntis user name
            password: WebUntis password
            base_url: Server host, e.g. 'mese.webuntis.com'
            client_name: Client identifier sent on login
            timeout: Request timeout in seconds
        """
        self.school = school
        self.username = username
        self.password = password
        self.base_url = self._normalize_base_url(base_url)
        self.client_name = client_name
        self.timeout = timeout
        self.session_info: Optional[Session] = None
        self.http = requests.Session()

    @staticmethod
    def _normalize_base_url(base_url: str) -> str:
        base_url = base_url.strip().rstrip('/')
        if not base_url.startswith(("http://", "https://")):
            base_url = f"https://{base_url}"
        return base_url

    @property
    def rpc_url(self) -> str:
        return f"{self.base_url}/WebUntis/jsonrpc.do"

    def _call(
        self,
        method: str,
        params: Any,
        error_cls: type = FetchError,
        http: Optional[requests.Session] = None
    ) -> Any:
        """
        Perform a JSON-RPC call

        Args:
            method: Remote method name
            params: Method parameters
            error_cls: Exception class raised for failures of this call
            http: HTTP session to use instead of the current one

        Returns:
            The 'result' member of the response
        """
        body = {
            "id": str(int(time.time() * 1000)),
            "method": method,
            "params": params,
            "jsonrpc": "2.0",
        }

        http = http or self.http
        try:
            logger.debug(f"Calling {method} on {self.rpc_url}")
            response = http.post(
                self.rpc_url,
                params={"school": self.school},
                json=body,
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise error_cls(f"{method} request failed: {e}") from e
        except ValueError as e:
            raise error_cls(f"{method} returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise error_cls(f"{method} returned an unexpected response")

        error = payload.get("error")
        if error:
            code = error.get("code")
            message = error.get("message", "unknown error")
            if code == NOT_AUTHENTICATED:
                raise AuthError(f"{method} failed, not authenticated: {message}")
            raise error_cls(f"{method} failed ({code}): {message}")

        if "result" not in payload:
            raise error_cls(f"{method} returned no result")
        return payload["result"]

    def login(self) -> Session:
        """
        Authenticate and open a new session

        Each login gets its own HTTP session, so a request still running on
        an abandoned session never shares cookies with the new one.

        Returns:
            Session information (session ID, class ID, person ID and type)
        """
        http = requests.Session()
        school_cookie = "_" + base64.b64encode(self.school.encode("utf-8")).decode("ascii")
        http.cookies.set("schoolname", f'"{school_cookie}"')

        result = self._call(
            "authenticate",
            {"user": self.username, "password": self.password, "client": self.client_name},
            error_cls=AuthError,
            http=http
        )
        if not isinstance(result, dict) or not result.get("sessionId"):
            raise AuthError("Login failed: no session ID returned")

        http.cookies.set("JSESSIONID", result["sessionId"])
        self.http = http
        self.session_info = Session(
            session_id=result["sessionId"],
            class_id=result.get("klasseId"),
            person_id=result.get("personId"),
            person_type=result.get("personType")
        )
        return self.session_info

    def logout(self):
        """
        Close the current session

        The logout request runs on a copy of the session cookies and the
        client switches to a fresh HTTP session; the old one is left untouched
        for any request still in flight on it.
        """
        previous = self.http
        self.http = requests.Session()
        self.session_info = None

        logout_http = requests.Session()
        logout_http.cookies.update(previous.cookies)
        try:
            self._call("logout", {}, error_cls=AuthError, http=logout_http)
        finally:
            logout_http.close()

    def list_entities(self) -> List[Entity]:
        """Get all classes of the school"""
        result = self._call("getKlassen", {})
        return [Entity.from_api(item) for item in result or []]

    def fetch_timetable(
        self,
        start: datetime,
        end: datetime,
        entity_id: int,
        entity_type: EntityType = EntityType.CLASS
    ) -> List[Lesson]:
        """
        Get all lessons of an entity in a date range

        Args:
            start: First day of the range (only the date is used)
            end: Last day of the range (only the date is used)
            entity_id: ID of the class (or other element)
            entity_type: Kind of element ``entity_id`` refers to

        Returns:
            List of lessons
        """
        options: Dict[str, Any] = {
            "id": int(time.time() * 1000),
            "element": {"id": int(entity_id), "type": int(entity_type)},
            "startDate": self._date_to_untis(start),
            "endDate": self._date_to_untis(end),
            "showLsText": True,
            "showStudentgroup": True,
            "showLsNumber": True,
            "showSubstText": True,
            "showInfo": True,
            "showBooking": True,
            "klasseFields": SHORT_DATA_FIELDS,
            "roomFields": SHORT_DATA_FIELDS,
            "subjectFields": SHORT_DATA_FIELDS,
            "teacherFields": SHORT_DATA_FIELDS,
        }
        result = self._call("getTimetable", {"options": options})

        lessons = []
        for item in result or []:
            try:
                lessons.append(Lesson.from_api(item))
            except (KeyError, TypeError, ValueError) as e:
                raise FetchError(f"Malformed timetable item: {e}") from e
        return lessons

    def fetch_timegrid(self) -> Timegrid:
        """Get the lesson periods of every school day"""
        result = self._call("getTimegridUnits", {})
        try:
            return [TimegridDay.from_api(day) for day in result or []]
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(f"Malformed timegrid: {e}") from e

    @staticmethod
    def _date_to_untis(value: datetime) -> int:
        return int(value.strftime("%Y%m%d"))
