from datetime import datetime, timezone

import pytest

from covid.loader import FeedSet, build_slice

DEATHS_CSV = """Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20
,Italy,41.9,12.6,0,1,3
Hubei,China,30.9,112.3,10,20,30
Beijing,China,40.2,116.4,1,2,2
"Los Angeles, CA",US,34.0,-118.2,0,0,0
,US,37.1,-95.7,0,0,1
"Virgin Islands, U.S.",US,18.3,-64.9,0,0,0
"""

CONFIRMED_CSV = """Province/State,Country/Region,Lat,Long,1/22/20,1/23/20,1/24/20
,Italy,41.9,12.6,5,10,20
Hubei,China,30.9,112.3,100,200,300
Beijing,China,40.2,116.4,10,15,20
"Los Angeles, CA",US,34.0,-118.2,0,0,0
,US,37.1,-95.7,1,2,5
"Virgin Islands, U.S.",US,18.3,-64.9,0,0,0
"""

DAILY_COUNTRY_CSV = """Country_Region,Last_Update,Lat,Long_,Confirmed,Deaths,Recovered,Active
Italy,2020-01-25 10:00:00,41.9,12.6,50,5,0,45
US,1/25/2020 22:22,37.1,-95.7,20,2,0,18
Atlantis,2020-01-25 10:00:00,0,0,1,1,0,0
"""

DAILY_STATE_CSV = """FIPS,Province_State,Country_Region,Last_Update,Lat,Long_,Confirmed,Deaths,Recovered,Active
,Beijing,China,,40.2,116.4,9,3,0,6
78,"Virgin Islands, U.S",US,2020-01-25 10:00:00,18.3,-64.9,4,0,0,4
6,Nowhere,US,2020-01-25 10:00:00,0,0,1,0,0,1
"""

# 3.5 days after the epoch: day index 3
NOW = datetime(2020, 1, 25, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def feeds():
    return FeedSet(deaths=DEATHS_CSV, confirmed=CONFIRMED_CSV,
                   daily_country=DAILY_COUNTRY_CSV, daily_state=DAILY_STATE_CSV)


@pytest.fixture
def time_series_feeds():
    return FeedSet(deaths=DEATHS_CSV, confirmed=CONFIRMED_CSV)


@pytest.fixture
def full_slice(feeds):
    return build_slice(feeds, now=NOW)
