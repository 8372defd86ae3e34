"""In-memory CampusNet stand-in for tests, served through httpx.MockTransport.

Each successful login issues the next token (100000000000001, ...002, ...).
Requests carrying any other token get the "session expired" page.
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx

from dualis.config import DualisConfig

BASE_URL = "https://dualis.test"
USERNAME = "student@dhbw.de"
PASSWORD = "secret"

DLL = "/scripts/mgrqispi.dll?APPNAME=CampusNet"

EXPIRED_PAGE = "<html><body><p>Session ist abgelaufen</p></body></html>"


def token_for(login_number: int) -> str:
    return f"{100000000000000 + login_number:015d}"


def make_config(**overrides) -> DualisConfig:
    values = {
        "base_url": BASE_URL,
        "username": USERNAME,
        "password": PASSWORD,
        "retry_attempts": 1,
        "retry_wait_seconds": 0,
        "login_timeout_seconds": 5,
    }
    values.update(overrides)
    return DualisConfig(**values)


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 7, 1, 6, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def redirect_page(token: str) -> str:
    return (
        "<html><body><div id='sessionId'>x</div>"
        "<script>window.location.href = "
        f"'{DLL}&PRGNAME=MLSSTART&ARGUMENTS=-N{token},-N000019,';</script>"
        "</body></html>"
    )


def home_page(token: str) -> str:
    return (
        "<html><body><ul>"
        f"<li><a href='{DLL}&amp;PRGNAME=SCHEDULER&amp;ARGUMENTS=-N{token},-N000028,-A,-A,-N1'>diese Woche</a></li>"
        f"<li><a href='{DLL}&amp;PRGNAME=COURSERESULTS&amp;ARGUMENTS=-N{token},-N000307,'>Prüfungsergebnisse</a></li>"
        f"<li><a href='{DLL}&amp;PRGNAME=ACTION&amp;ARGUMENTS=-N{token},-N000333'>Nachrichten</a></li>"
        f"<li><a href='{DLL}&amp;PRGNAME=LOGOUT&amp;ARGUMENTS=-N{token},-N001'>Abmelden</a></li>"
        "</ul></body></html>"
    )


def schedule_page(token: str, room: str = "HOR-120") -> str:
    return (
        "<html><body><table class='nb'>"
        "<caption>Stundenplan vom 01.07. bis 07.07.</caption>"
        "<tr class='tbsubhead'>"
        "<th class='weekday'><a href='#'>Mo 01.07.</a></th>"
        "<th class='weekday'><a href='#'>Di 02.07.</a></th>"
        "</tr><tr>"
        "<td class='appointment' abbr='Mo Spalte 1'>"
        f"<a href='{DLL}&amp;PRGNAME=APP_DETAIL&amp;ARGUMENTS=-N{token},-N1'>Mathematik I</a>"
        f"<br><span class='timePeriod'>08:15 - 09:45 {room}</span></td>"
        "<td class='appointment' abbr='Di Spalte 1'>Datenbanken"
        "<br><span class='timePeriod'>10:00 - 11:30 HOR-135HOR-136</span></td>"
        "</tr></table></body></html>"
    )


def detail_page(room: str = "HOR-120") -> str:
    return (
        "<html><body><h1>T4INF1003.1 Mathematik I HOR-TINF2024</h1>"
        "<table><tr><td name='instructorName'>Prof. Dr. Gauß</td></tr></table>"
        f"<span name='appoinmentRooms'>{room}</span></body></html>"
    )


def grades_page(math_grade: str = "1,3") -> str:
    return (
        "<html><body>"
        "<select id='semester'>"
        "<option value='000000015158000' selected>SoSe 2025</option>"
        "<option value='000000015148000'>WiSe 2024/25</option>"
        "</select>"
        "<table class='nb list'><tbody>"
        f"<tr><td>T4INF1001</td><td>Mathematik I</td><td>{math_grade}</td><td>5,0</td><td>bestanden</td></tr>"
        "<tr><td>T4INF1002</td><td>Theoretische Informatik</td><td>noch nicht gesetzt</td><td>5,0</td><td></td></tr>"
        "</tbody></table></body></html>"
    )


def notifications_page(token: str) -> str:
    return (
        "<html><body><table class='nb rw-table rw-all'>"
        "<tr class='tbdata'><td><img src='/img/in_new.gif'></td><td>30.07.2025</td><td>08:05</td>"
        "<td>T4INF2904.2/C# und .NET</td>"
        f"<td><a href='{DLL}&amp;PRGNAME=MESSAGEDETAILS&amp;ARGUMENTS=-N{token},-N1'>"
        '"T4INF2904.2 / C# und .NET HOR-TINF2024": Termin geändert</a></td>'
        f"<td><a href='mgrqispi.dll?APPNAME=CampusNet&amp;PRGNAME=DELETEMESSAGE&amp;ARGUMENTS=-N{token},-N1'>x</a></td></tr>"
        "<tr class='tbdata'><td><img src='/img/in_old.gif'></td><td>01.07.2025</td><td>10:00</td>"
        "<td>Sekretariat</td><td>Bibliothek geschlossen</td><td></td></tr>"
        "</table></body></html>"
    )


class FakePortal:
    """Routes requests by PRGNAME and records them."""

    def __init__(self) -> None:
        self.logins = 0
        self.valid_token: str | None = None
        self.requests: list[httpx.Request] = []
        self.overrides: dict[str, httpx.Response] = {}
        self.room = "HOR-120"
        self.math_grade = "1,3"

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler), follow_redirects=False)

    def expire(self) -> None:
        self.valid_token = None

    def programs(self) -> list[str]:
        return [self._program(request) for request in self.requests]

    def _program(self, request: httpx.Request) -> str:
        if request.method == "POST":
            return parse_qs(request.content.decode()).get("PRGNAME", [""])[0]
        return request.url.params.get("PRGNAME", "")

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        program = self._program(request)
        if program in self.overrides:
            return self.overrides[program]

        if program == "LOGINCHECK":
            return self._login(request)

        arguments = request.url.params.get("ARGUMENTS", "")
        token = arguments.split(",")[0].removeprefix("-N")
        if program == "LOGOUT":
            self.valid_token = None
            return httpx.Response(200, text="<html>bye</html>")
        if token != self.valid_token:
            return httpx.Response(200, text=EXPIRED_PAGE)

        pages = {
            "STARTPAGE_DISPATCH": lambda: redirect_page(token),
            "MLSSTART": lambda: home_page(token),
            "SCHEDULER": lambda: schedule_page(token, self.room),
            "APP_DETAIL": lambda: detail_page(self.room),
            "COURSERESULTS": lambda: grades_page(self.math_grade),
            "ACTION": lambda: notifications_page(token),
            "MESSAGEDETAILS": lambda: "<html><h1>Termin geändert</h1></html>",
        }
        if program not in pages:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, text=pages[program]())

    def _login(self, request: httpx.Request) -> httpx.Response:
        form = parse_qs(request.content.decode())
        if form.get("usrname") != [USERNAME] or form.get("pass") != [PASSWORD]:
            return httpx.Response(200, text="<html>Benutzername oder Passwort falsch</html>")

        self.logins += 1
        self.valid_token = token_for(self.logins)
        target = f"/scripts/mgrqispi.dll?APPNAME=CampusNet&PRGNAME=STARTPAGE_DISPATCH&ARGUMENTS=-N{self.valid_token},-N000019,-N000000000000000"
        return httpx.Response(200, headers={"Refresh": f"0; URL={target}"}, text="")
