import logging
import time
from datetime import date, datetime, timezone
from functools import wraps

import requests
from flask import current_app

from app import db
from app.models import Game, Team
from app.utils.validation import parse_number

logger = logging.getLogger(__name__)

# API-Sports short status codes
LIVE_STATUSES = {"LIVE", "1Q", "2Q", "3Q", "4Q", "OT", "HT"}
FINAL_STATUSES = {"FT", "AOT"}

NFL_TEAMS = [
    ("1", "Kansas City Chiefs", "KC", "Kansas City"),
    ("2", "Buffalo Bills", "BUF", "Buffalo"),
    ("3", "Dallas Cowboys", "DAL", "Dallas"),
    ("4", "Green Bay Packers", "GB", "Green Bay"),
    ("5", "San Francisco 49ers", "SF", "San Francisco"),
    ("6", "Miami Dolphins", "MIA", "Miami"),
    ("7", "New England Patriots", "NE", "New England"),
    ("8", "New York Jets", "NYJ", "New York"),
    ("9", "Pittsburgh Steelers", "PIT", "Pittsburgh"),
    ("10", "Baltimore Ravens", "BAL", "Baltimore"),
    ("11", "Cleveland Browns", "CLE", "Cleveland"),
    ("12", "Cincinnati Bengals", "CIN", "Cincinnati"),
    ("13", "Houston Texans", "HOU", "Houston"),
    ("14", "Indianapolis Colts", "IND", "Indianapolis"),
    ("15", "Jacksonville Jaguars", "JAX", "Jacksonville"),
    ("16", "Tennessee Titans", "TEN", "Tennessee"),
    ("17", "Denver Broncos", "DEN", "Denver"),
    ("18", "Las Vegas Raiders", "LV", "Las Vegas"),
    ("19", "Los Angeles Chargers", "LAC", "Los Angeles"),
    ("20", "Arizona Cardinals", "ARI", "Arizona"),
    ("21", "Los Angeles Rams", "LAR", "Los Angeles"),
    ("22", "Seattle Seahawks", "SEA", "Seattle"),
    ("23", "Atlanta Falcons", "ATL", "Atlanta"),
    ("24", "Carolina Panthers", "CAR", "Carolina"),
    ("25", "New Orleans Saints", "NO", "New Orleans"),
    ("26", "Tampa Bay Buccaneers", "TB", "Tampa Bay"),
    ("27", "Chicago Bears", "CHI", "Chicago"),
    ("28", "Detroit Lions", "DET", "Detroit"),
    ("29", "Minnesota Vikings", "MIN", "Minnesota"),
    ("30", "New York Giants", "NYG", "New York"),
    ("31", "Philadelphia Eagles", "PHI", "Philadelphia"),
    ("32", "Washington Commanders", "WAS", "Washington"),
]


def rate_limit_decorator(max_retries=3, base_delay=1.0, backoff_factor=2.0):
    """
    Decorator to handle API rate limiting with exponential backoff
    """

    def decorator(func):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            for attempt in range(max_retries):
                try:
                    return func(self, *args, **kwargs)

                except requests.exceptions.HTTPError as e:
                    status = e.response.status_code if e.response is not None else 0
                    if status != 429 and status < 500:
                        raise
                    delay = base_delay * (backoff_factor**attempt)
                    if status == 429:
                        delay = float(e.response.headers.get("Retry-After", delay))
                    logger.warning(
                        f"HTTP {status}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)
                    else:
                        raise

                except (
                    requests.exceptions.ConnectionError,
                    requests.exceptions.Timeout,
                ) as e:
                    delay = base_delay * (backoff_factor**attempt)
                    logger.warning(
                        f"Request failed: {e}. Waiting {delay}s before retry {attempt + 1}/{max_retries}"
                    )
                    if attempt < max_retries - 1:
                        time.sleep(delay)
                    else:
                        raise

        return wrapper

    return decorator


def get_current_season(today=None):
    """Configured SEASON_YEAR, or the calendar year"""
    configured = current_app.config.get("SEASON_YEAR")
    if configured:
        return configured
    return (today or date.today()).year


def get_current_week(today=None, max_week=18):
    """
    Approximate NFL week: whole weeks since September 1st plus one,
    clamped to 1..max_week.
    """
    today = today or date.today()
    season_start = date(today.year, 9, 1)
    weeks_since_start = (today - season_start).days // 7
    return min(max(weeks_since_start + 1, 1), max_week)


def map_game_status(short_status):
    """Map an API-Sports short status to scheduled / live / final"""
    if short_status in FINAL_STATUSES:
        return "final"
    if short_status in LIVE_STATUSES:
        return "live"
    return "scheduled"


def seed_teams():
    """Create or update the 32 NFL teams from the static table"""
    teams = []
    for api_id, name, abbreviation, city in NFL_TEAMS:
        teams.append(
            Team.upsert(api_id, name=name, abbreviation=abbreviation, city=city)
        )
    db.session.commit()
    logger.info(f"Seeded {len(teams)} teams")
    return teams


class DataSync:
    """
    Pulls schedules and scores from API-Sports and spreads from The Odds API,
    with rate limiting and retries
    """

    def __init__(self, api_sports_key=None, odds_api_key=None):
        config = current_app.config
        self.api_sports_url = config.get("API_SPORTS_BASE_URL")
        self.odds_api_url = config.get("THE_ODDS_API_BASE_URL")
        self.api_sports_key = api_sports_key or config.get("API_SPORTS_KEY")
        self.odds_api_key = odds_api_key or config.get("THE_ODDS_API_KEY")
        self.max_week = config.get("MAX_WEEK", 18)

        self.session = requests.Session()
        self.session.headers.update({"User-Agent": "Spread-Pickem/1.0"})

        # Rate limiting configuration
        self.last_request_time = 0
        self.min_request_interval = 0.5  # Minimum 500ms between requests
        self._odds_cache = None

    def _enforce_rate_limit(self):
        """Keep a minimum interval between outgoing requests"""
        time_since_last = time.time() - self.last_request_time
        if time_since_last < self.min_request_interval:
            time.sleep(self.min_request_interval - time_since_last)
        self.last_request_time = time.time()

    @rate_limit_decorator(max_retries=3, base_delay=2.0)
    def _make_api_request(self, url, params=None, headers=None):
        """Make API request with rate limiting and retry logic"""
        self._enforce_rate_limit()
        response = self.session.get(url, params=params, headers=headers, timeout=30)
        response.raise_for_status()
        return response

    def fetch_games(self, season, week):
        """Fetch raw game entries for a week from API-Sports"""
        response = self._make_api_request(
            f"{self.api_sports_url}/games",
            params={"league": 1, "season": season, "week": week},
            headers={"x-apisports-key": self.api_sports_key},
        )
        return response.json().get("response", [])

    def fetch_odds(self):
        """Fetch current NFL spread markets, once per sync"""
        if self._odds_cache is None:
            response = self._make_api_request(
                f"{self.odds_api_url}/sports/americanfootball_nfl/odds",
                params={
                    "apiKey": self.odds_api_key,
                    "regions": "us",
                    "markets": "spreads",
                    "oddsFormat": "american",
                },
            )
            self._odds_cache = response.json()
        return self._odds_cache

    def get_spreads(self, home_name, away_name):
        """
        Spreads for a matchup from the first bookmaker quoting it.

        Falls back to a 0/0 line and a 50/50 consensus when the game is not
        listed or the odds provider is unavailable.
        """
        default = {"home_spread": 0.0, "away_spread": 0.0, "consensus": (50.0, 50.0)}

        if not self.odds_api_key:
            return default

        try:
            events = self.fetch_odds()
        except requests.exceptions.RequestException as e:
            logger.error(f"Error fetching spreads: {e}")
            return default

        for event in events:
            if event.get("home_team") != home_name or event.get("away_team") != away_name:
                continue

            for bookmaker in event.get("bookmakers", []):
                for market in bookmaker.get("markets", []):
                    if market.get("key") != "spreads":
                        continue
                    points = {
                        outcome.get("name"): outcome.get("point")
                        for outcome in market.get("outcomes", [])
                    }
                    if points.get(home_name) is None or points.get(away_name) is None:
                        continue
                    return {
                        "home_spread": float(points[home_name]),
                        "away_spread": float(points[away_name]),
                        "consensus": (50.0, 50.0),
                    }

        return default

    def _team_from_payload(self, team_data):
        """Get or create a team from an API-Sports team object"""
        team = Team.query.filter_by(api_id=str(team_data["id"])).first()
        if team:
            return team

        name = team_data.get("name", "")
        nickname = name.split(" ")[-1] if name else ""
        known = next((t for t in NFL_TEAMS if t[1] == name), None)
        return Team.upsert(
            team_data["id"],
            name=name,
            abbreviation=known[2] if known else nickname[:10],
            city=name[: -len(nickname)].strip() if nickname else name,
            logo_url=team_data.get("logo"),
        )

    @staticmethod
    def _parse_entry(game_data):
        """
        Check an API-Sports game entry before anything touches the session.

        Raises:
            KeyError, TypeError, ValueError: when the entry is malformed
        """
        teams = game_data["teams"]
        home_data, away_data = teams["home"], teams["away"]
        if home_data.get("id") is None or away_data.get("id") is None:
            raise ValueError("game entry is missing a team id")
        if str(home_data["id"]) == str(away_data["id"]):
            raise ValueError("home and away teams are the same")

        game_info = game_data["game"]
        if game_info.get("id") is None:
            raise ValueError("game entry is missing its id")

        timestamp = (game_info.get("date") or {}).get("timestamp")
        game_time = None
        if timestamp:
            game_time = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)

        scores = game_data.get("scores") or {}
        return {
            "api_id": str(game_info["id"]),
            "home": home_data,
            "away": away_data,
            "game_time": game_time,
            "status": map_game_status((game_info.get("status") or {}).get("short")),
            "home_score": parse_number((scores.get("home") or {}).get("total"), int),
            "away_score": parse_number((scores.get("away") or {}).get("total"), int),
        }

    def process_game(self, game_data, season, week):
        """Create or update one game from an API-Sports game entry"""
        entry = self._parse_entry(game_data)

        home_team = self._team_from_payload(entry["home"])
        away_team = self._team_from_payload(entry["away"])
        db.session.flush()

        game = Game.query.filter_by(api_id=entry["api_id"]).first()
        if not game:
            game = Game(api_id=entry["api_id"])
            db.session.add(game)

        game.season = season
        game.week = week
        game.home_team_id = home_team.id
        game.away_team_id = away_team.id

        if entry["game_time"] is not None:
            game.game_time = entry["game_time"]
        elif game.game_time is None:
            game.game_time = datetime.now(timezone.utc)

        if not game.is_spread_locked:
            spreads = self.get_spreads(home_team.name, away_team.name)
            game.update_spread(spreads["home_spread"], spreads["away_spread"])
            game.consensus_home, game.consensus_away = spreads["consensus"]

        game.update_score(entry["home_score"], entry["away_score"], status=entry["status"])

        return game

    def update_games_data(self, season=None, week=None):
        """
        Sync the current week's games and spreads, then regrade.

        Returns:
            tuple: (success, message)
        """
        from app.services.grading_service import update_pick_results

        if not self.api_sports_key:
            return False, "API_SPORTS_KEY is not configured"

        season = season or get_current_season()
        week = week or get_current_week(max_week=self.max_week)

        try:
            logger.info(f"Syncing games for {season} week {week}")
            games = []
            for game_data in self.fetch_games(season, week):
                try:
                    games.append(self.process_game(game_data, season, week))
                except (KeyError, TypeError, ValueError, OverflowError) as e:
                    logger.error(f"Skipping malformed game entry: {e}")

            db.session.commit()

        except Exception as e:
            db.session.rollback()
            logger.error(f"Error updating games data: {e}", exc_info=True)
            return False, str(e)

        summary = update_pick_results()
        return (
            True,
            f"Synced {len(games)} games for week {week}; "
            f"graded {summary['games_graded']} final games",
        )
