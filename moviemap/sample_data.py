"""
Sample filming locations and submissions for development databases.
"""

from __future__ import annotations

from moviemap.db import LocationStore, SubmissionStore

SAMPLE_LOCATIONS = [
    {
        "title": "The Dark Knight",
        "year": 2008,
        "type": "movie",
        "lat": 41.8781,
        "lng": -87.6298,
        "location_name": "Chicago, Illinois (Lower Wacker Drive)",
        "trailer_url": "https://www.youtube.com/watch?v=EXeTwQWrcwY",
        "imdb_link": "https://www.imdb.com/title/tt0468569/",
    },
    {
        "title": "La La Land",
        "year": 2016,
        "type": "movie",
        "lat": 34.0675,
        "lng": -118.2987,
        "location_name": "Griffith Observatory, Los Angeles",
        "trailer_url": "https://www.youtube.com/watch?v=0pdqf4P9MB8",
        "imdb_link": "https://www.imdb.com/title/tt3783958/",
    },
    {
        "title": "Lost in Translation",
        "year": 2003,
        "type": "movie",
        "lat": 35.6895,
        "lng": 139.6917,
        "location_name": "Park Hyatt Tokyo, Shinjuku",
        "trailer_url": "https://www.youtube.com/watch?v=W6iVPCRflQM",
        "imdb_link": "https://www.imdb.com/title/tt0335266/",
    },
    {
        "title": "Game of Thrones",
        "year": 2011,
        "type": "tv",
        "lat": 42.6507,
        "lng": 18.0944,
        "location_name": "Dubrovnik, Croatia (King's Landing)",
        "trailer_url": "https://www.youtube.com/watch?v=KPLWWIOCOOQ",
        "imdb_link": "https://www.imdb.com/title/tt0944947/",
    },
    {
        "title": "Inception",
        "year": 2010,
        "type": "movie",
        "lat": 43.7800,
        "lng": 11.2471,
        "location_name": "Ponte Vecchio, Florence, Italy",
        "trailer_url": "https://www.youtube.com/watch?v=YoHD9XEInc0",
        "imdb_link": "https://www.imdb.com/title/tt1375666/",
    },
]

SAMPLE_SUBMISSIONS = [
    {
        "title": "Breaking Bad",
        "year": 2008,
        "type": "tv",
        "lat": 35.1264,
        "lng": -106.5703,
        "location_name": "Albuquerque, New Mexico",
        "trailer_url": "https://www.youtube.com/watch?v=HhesaQXLuRY",
        "imdb_link": "https://www.imdb.com/title/tt0903747/",
    },
    {
        "title": "The Lord of the Rings",
        "year": 2001,
        "type": "movie",
        "lat": -45.0153,
        "lng": 168.6628,
        "location_name": "Queenstown, New Zealand",
        "trailer_url": "https://www.youtube.com/watch?v=V75dMMIW2B4",
        "imdb_link": "https://www.imdb.com/title/tt0120737/",
    },
]


def seed_sample_data(
    locations: LocationStore,
    submissions: SubmissionStore,
    *,
    include_submissions: bool = True,
) -> tuple[int, int]:
    """Insert the sample rows; returns (locations added, submissions added)."""
    for fields in SAMPLE_LOCATIONS:
        locations.create(fields)
    added_submissions = 0
    if include_submissions:
        for fields in SAMPLE_SUBMISSIONS:
            submissions.create(fields)
            added_submissions += 1
    return len(SAMPLE_LOCATIONS), added_submissions
