from datetime import date

import pytest

from covid.collection import SeriesSlice, less, period_options
from covid.errors import SeriesNotFound
from covid.models import EPOCH, Datum, Option, Series


def make(country, province="", deaths=(0, 0, 0)):
    s = Series(country=country, province=province, starts_at=EPOCH,
               deaths=list(deaths), confirmed=[1] * len(deaths))
    s.update_daily()
    return s


@pytest.fixture
def data():
    return SeriesSlice([
        make("Italy", deaths=[0, 4, 10]),
        make("China", "Hubei", deaths=[10, 20, 30]),
        make("China", "Beijing", deaths=[0, 0, 0]),
        make("Zambia"),
        make("Albania"),
        make("United Kingdom", deaths=[1, 2, 3]),
        make("United Kingdom", "Bermuda", deaths=[0, 1, 1]),
        make("US", deaths=[0, 1, 50]),
    ])


def test_fetch_series(data):
    s = data.fetch_series("china", "hubei")
    assert s.province == "Hubei"
    assert data.fetch_series("united kingdom", "").country == "United Kingdom"


def test_fetch_series_miss_raises_with_sentinel(data):
    with pytest.raises(SeriesNotFound) as info:
        data.fetch_series("Atlantis", "")
    assert info.value.series is not None
    assert not info.value.series.valid()
    assert not data.find_series("Atlantis", "").valid()


def test_fetch_date(data):
    assert data.fetch_date("Italy", "", Datum.DEATHS, date(2020, 1, 23)) == 4
    assert data.fetch_date("Italy", "", Datum.DEATHS, date(2021, 1, 1)) == 0
    with pytest.raises(SeriesNotFound):
        data.fetch_date("Atlantis", "", Datum.DEATHS, date(2020, 1, 23))


def test_less_orders_by_deaths_then_country():
    assert less(make("B", deaths=[0, 0, 5]), make("A", deaths=[0, 0, 1]))
    assert not less(make("A", deaths=[0, 0, 1]), make("B", deaths=[0, 0, 5]))
    assert less(make("A"), make("B"))
    assert less(make("Z", deaths=[0, 0, 1]), make("A"))


def test_ranked(data):
    ranked = data.ranked()
    assert isinstance(ranked, SeriesSlice)
    assert [s.title() for s in ranked] == [
        "US", "Hubei (China)", "Italy", "United Kingdom", "Bermuda (United Kingdom)",
        "Albania", "Beijing (China)", "Zambia",
    ]
    # ranking does not reorder the source
    assert data[0].country == "Italy"


def test_top(data):
    assert [s.country for s in data.top(2)] == ["US", "China"]
    assert data.top(0) == []


def test_country_options(data):
    options = data.country_options()
    assert options[0] == Option(name="Global", value="")
    assert Option(name="Italy (10 Deaths)", value="italy") in options
    assert Option(name="Zambia", value="zambia") in options
    assert Option(name="United Kingdom (2 Deaths)", value="united-kingdom") in options
    assert all(o.name != "Hubei" for o in options)
    assert len(options) == 6


def test_province_options(data):
    assert data.province_options("China") == [
        Option(name="All Areas", value=""),
        Option(name="Hubei (20 Deaths)", value="hubei"),
        Option(name="Beijing", value="beijing"),
    ]


def test_province_options_excluded_countries(data):
    assert data.province_options("United Kingdom") == [Option(name="All Areas", value="")]
    assert data.province_options("France") == [Option(name="All Areas", value="")]


def test_period_options():
    options = period_options()
    assert [o.value for o in options] == ["0", "112", "56", "28", "14", "7", "3", "2"]
    assert options[0].name == "All Time"
    assert options[-1].name == "2 Days"


def test_copy_is_deep(data):
    clone = data.copy()
    assert clone == data
    clone[0].deaths[0] = 99
    assert data[0].deaths[0] == 0
    assert clone[0] is not data[0]


def test_print_series_logs(data, caplog):
    caplog.set_level("INFO")
    data.print_series("Italy", "")
    assert "series:Italy" in caplog.text
    with pytest.raises(SeriesNotFound):
        data.print_series("Atlantis", "")


def test_to_frame(data):
    df = data.to_frame()
    assert len(df) == 3 * len(data)
    assert list(df.columns[:3]) == ["country", "province", "date"]
    assert SeriesSlice().to_frame().empty
