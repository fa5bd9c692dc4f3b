from bingeclub.core.security import TokenVerificationError
from bingeclub.models.identity import Identity
from bingeclub.services.omdb_client import MovieNotFoundError, normalize_omdb_payload

INCEPTION_PAYLOAD = {
    "Title": "Inception",
    "Year": "2010",
    "Plot": "A thief who steals corporate secrets through dream-sharing technology...",
    "Ratings": [
        {"Source": "Internet Movie Database", "Value": "8.8/10"},
        {"Source": "Rotten Tomatoes", "Value": "87%"},
        {"Source": "Metacritic", "Value": "74/100"},
    ],
    "Genre": "Action, Adventure, Sci-Fi",
    "Director": "Christopher Nolan",
    "Actors": "Leonardo DiCaprio, Joseph Gordon-Levitt, Elliot Page",
    "imdbRating": "8.8",
    "imdbVotes": "2,600,000",
    "Type": "movie",
    "Poster": "https://m.media-amazon.com/images/M/inception.jpg",
    "imdbID": "tt1375666",
    "Response": "True",
}

ARRIVAL_PAYLOAD = {
    "Title": "Arrival",
    "Year": "2016",
    "Plot": "A linguist works with the military to communicate with alien lifeforms.",
    "Ratings": [{"Source": "Internet Movie Database", "Value": "7.9/10"}],
    "Genre": "Drama, Mystery, Sci-Fi",
    "Director": "Denis Villeneuve",
    "Actors": "Amy Adams, Jeremy Renner, Forest Whitaker",
    "imdbRating": "7.9",
    "imdbVotes": "750,000",
    "Type": "movie",
    "Poster": "https://m.media-amazon.com/images/M/arrival.jpg",
    "imdbID": "tt2543164",
    "Response": "True",
}

USER_ONE = Identity(
    external_user_id="user-1",
    email="one@example.com",
    display_name="User One",
    avatar_url="https://example.com/one.png",
)
USER_TWO = Identity(external_user_id="user-2", email="two@example.com", display_name="User Two")

TOKENS = {"token-user-1": USER_ONE, "token-user-2": USER_TWO}


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def save_body(payload: dict) -> dict:
    """The body the web client posts to /save: the search response as-is."""
    return {
        "title": payload["Title"],
        "year": payload["Year"],
        "plot": payload["Plot"],
        "ratings": payload["Ratings"],
        "genre": payload["Genre"],
        "director": payload["Director"],
        "actors": payload["Actors"],
        "imdbRating": payload["imdbRating"],
        "imdbVotes": payload["imdbVotes"],
        "type": payload["Type"],
        "poster": payload["Poster"],
        "imdbID": payload["imdbID"],
    }


class FakeTokenVerifier:
    def __init__(self, identities):
        self.identities = identities
        self.calls = []

    async def verify(self, token):
        self.calls.append(token)
        try:
            return self.identities[token]
        except KeyError:
            raise TokenVerificationError("Invalid token: unknown test token")


class FakeLookupClient:
    def __init__(self, catalog):
        self.catalog = {title.lower(): payload for title, payload in catalog.items()}
        self.calls = []

    async def lookup(self, title):
        self.calls.append(title)
        payload = self.catalog.get(title.lower())
        if payload is None:
            raise MovieNotFoundError("Movie not found!")
        return normalize_omdb_payload(payload)
