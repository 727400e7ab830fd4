import random

import pytest

from meetspot.clustering import VenueClusterer
from meetspot.models import Coordinate, ScoredVenue, VenueScore, VibePreferences
from meetspot.scoring import (
    VenueScorer,
    base_quality,
    distance_balance,
    district_vibrancy,
    rank,
    rank_clusters,
    vibe_match,
)
from meetspot.strategy import ARTSY_VIBE_BOOST, select_strategy, weights_for

from conftest import make_venue

A = Coordinate(39.70, -105.00)
B = Coordinate(39.80, -104.90)


def test_distance_balance_is_symmetric():
    for point in [Coordinate(39.72, -104.97), Coordinate(39.79, -105.03), Coordinate(39.75, -104.95)]:
        assert distance_balance(point, A, B) == pytest.approx(distance_balance(point, B, A))


def test_distance_balance_is_one_when_equidistant():
    # equator points make equal distances exact
    a = Coordinate(0.0, -0.1)
    b = Coordinate(0.0, 0.1)
    assert distance_balance(Coordinate(0.05, 0.0), a, b) == pytest.approx(1.0, abs=1e-12)
    assert distance_balance(Coordinate(-0.2, 0.0), a, b) == pytest.approx(1.0, abs=1e-12)


def test_distance_balance_below_one_off_the_bisector():
    a = Coordinate(0.0, -0.1)
    b = Coordinate(0.0, 0.1)
    assert distance_balance(Coordinate(0.0, 0.05), a, b) < 1.0
    assert distance_balance(a, a, b) == pytest.approx(0.0, abs=1e-9)


def test_distance_balance_with_identical_origins():
    for point in [Coordinate(39.72, -104.97), A, Coordinate(0, 0)]:
        assert distance_balance(point, A, A) == 1


def test_district_vibrancy_counts_neighbors_in_radius():
    venue = make_venue('center', 39.75, -105.0)
    close = [make_venue(f'c{i}', 39.75 + 0.0005 * (i + 1), -105.0, rating=4.0) for i in range(2)]
    far = make_venue('far', 39.80, -105.0, rating=5.0)
    score = district_vibrancy(venue, [venue] + close + [far], radius_meters=300)
    assert score == pytest.approx(0.8 * (2 / 5) + 0.2 * (4.0 / 5))


def test_district_vibrancy_caps_density():
    venue = make_venue('center', 39.75, -105.0)
    close = [make_venue(f'c{i}', 39.75 + 0.0002 * (i + 1), -105.0, rating=5.0) for i in range(8)]
    assert district_vibrancy(venue, [venue] + close, radius_meters=300) == pytest.approx(1.0)


def test_district_vibrancy_without_neighbors():
    venue = make_venue('alone', 39.75, -105.0)
    assert district_vibrancy(venue, [venue], radius_meters=300) == 0


def test_vibe_match_distance_to_preference(keywords):
    venue = make_venue('v', 39.75, -105.0, name='Upscale Wine Lounge', categories=('bar',))
    # upscale 3/4, artsy 0 -> refinement (0.75 + 1) / 2 = 0.875
    refined = VibePreferences(venue_style=1.0, neighborhood_vibe=1.0, location_priority=0.5)
    casual = VibePreferences(venue_style=0.0, neighborhood_vibe=0.0, location_priority=0.5)
    assert vibe_match(venue, refined, keywords) == pytest.approx(0.875)
    assert vibe_match(venue, casual, keywords) == pytest.approx(0.125)


def test_vibe_match_averages_price_level(keywords):
    venue = make_venue('v', 39.75, -105.0, name='Plain Place', categories=('cafe',), price_level=4)
    prefs = VibePreferences(venue_style=1.0, neighborhood_vibe=1.0, location_priority=0.5)
    # keyword refinement 0.5, price 1.0 -> 0.75
    assert vibe_match(venue, prefs, keywords) == pytest.approx(0.75)


def test_base_quality():
    assert base_quality(make_venue('v', 0, 0, rating=4.0)) == pytest.approx(0.8)
    assert base_quality(make_venue('v', 0, 0, rating=0.0)) == 0


def test_equal_distance_strategy_with_artsy_boost(keywords):
    prefs = VibePreferences(venue_style=0, neighborhood_vibe=0, location_priority=0.2)
    strategy = select_strategy(prefs.location_priority)
    assert strategy.type.value == 'EQUAL_DISTANCE'

    venue = make_venue('v', 39.75, -104.95, name='Art Studio', categories=('cafe',))
    raw = vibe_match(venue, prefs, keywords)
    assert raw == pytest.approx(0.75)

    score = VenueScorer(keywords=keywords).score(venue, [venue], A, B, prefs, strategy)
    assert score.vibe_match == pytest.approx(raw * ARTSY_VIBE_BOOST)


def test_no_boost_without_artsy_preference(keywords):
    prefs = VibePreferences(venue_style=0, neighborhood_vibe=0.9, location_priority=0.2)
    venue = make_venue('v', 39.75, -104.95, name='Art Studio', categories=('cafe',))
    score = VenueScorer(keywords=keywords).score(venue, [venue], A, B, prefs, select_strategy(0.2))
    assert score.vibe_match == pytest.approx(vibe_match(venue, prefs, keywords))


def test_no_boost_for_upscale_venue(keywords):
    prefs = VibePreferences(venue_style=0, neighborhood_vibe=0, location_priority=0.2)
    venue = make_venue('v', 39.75, -104.95, name='Cocktail Lounge', categories=('bar',))
    score = VenueScorer(keywords=keywords).score(venue, [venue], A, B, prefs, select_strategy(0.2))
    assert score.vibe_match == pytest.approx(vibe_match(venue, prefs, keywords))


def test_final_is_weighted_sum(keywords):
    prefs = VibePreferences(venue_style=0.6, neighborhood_vibe=0.7, location_priority=0.5)
    strategy = select_strategy(prefs.location_priority)
    venues = [make_venue(f'v{i}', 39.75 + 0.0005 * i, -104.95, rating=4.0 + 0.1 * i) for i in range(4)]
    score = VenueScorer(keywords=keywords).score(venues[0], venues, A, B, prefs, strategy)
    w = weights_for(strategy, prefs)
    expected = (score.distance_balance * w.distance + score.district_vibrancy * w.neighborhood
                + score.vibe_match * w.vibe + score.base_quality * w.quality)
    assert score.final == pytest.approx(expected)


def test_final_score_always_in_unit_interval(keywords):
    rng = random.Random(7)
    names = ['Art Studio', 'Cocktail Lounge', 'Upscale Wine Bar', 'Diner', 'Gallery Brewery', 'Hip Spot']
    scorer = VenueScorer(keywords=keywords)
    for _ in range(40):
        venues = [
            make_venue(
                f'v{i}', 39.70 + rng.random() * 0.1, -105.0 + rng.random() * 0.1,
                rating=rng.uniform(0, 5), reviews=rng.randint(0, 500),
                name=rng.choice(names), price_level=rng.choice([None, 0, 1, 2, 3, 4]),
            )
            for i in range(8)
        ]
        prefs = VibePreferences(rng.random(), rng.random(), rng.random())
        strategy = select_strategy(prefs.location_priority)
        origin_b = rng.choice([A, B])
        clusters = VenueClusterer(keywords=keywords).find_clusters(venues)
        for s in scorer.score_all(venues, clusters, A, origin_b, prefs, strategy):
            for value in (s.score.distance_balance, s.score.district_vibrancy,
                          s.score.vibe_match, s.score.base_quality, s.score.final):
                assert 0.0 <= value <= 1.0


def test_score_is_deterministic(keywords):
    prefs = VibePreferences(0.3, 0.2, 0.8)
    strategy = select_strategy(prefs.location_priority)
    venues = [make_venue(f'v{i}', 39.75 + 0.001 * i, -104.95, name='Gallery Bar') for i in range(3)]
    scorer = VenueScorer(keywords=keywords)
    first = scorer.score(venues[1], venues, A, B, prefs, strategy)
    second = scorer.score(venues[1], venues, A, B, prefs, strategy)
    assert first == second


def _scored(venue_id, final):
    return ScoredVenue(venue=make_venue(venue_id, 0, 0), score=VenueScore(0, 0, 0, 0, final))


def test_rank_breaks_ties_by_input_order():
    scored = [_scored('a', 0.5), _scored('b', 0.9), _scored('c', 0.5), _scored('d', 0.5)]
    assert [s.venue.id for s in rank(scored)] == ['b', 'a', 'c', 'd']


def test_score_all_attaches_cluster_ids(keywords):
    venues = [
        make_venue('v1', 39.7500, -105.0000),
        make_venue('v2', 39.7509, -105.0000),
        make_venue('v3', 39.7500, -104.9990),
        make_venue('lone', 39.7000, -104.9000),
    ]
    clusters = VenueClusterer(keywords=keywords).find_clusters(venues)
    prefs = VibePreferences()
    scored = VenueScorer(keywords=keywords).score_all(venues, clusters, A, B, prefs, select_strategy(0.5))
    by_id = {s.venue.id: s for s in scored}
    assert by_id['v1'].cluster_id == clusters[0].id
    assert by_id['lone'].cluster_id is None
    finals = [s.score.final for s in scored]
    assert finals == sorted(finals, reverse=True)


def test_rank_clusters_by_mean_member_score(keywords):
    clusterer = VenueClusterer(keywords=keywords)
    west = [make_venue(f'w{i}', 39.75 + 0.0005 * i, -105.0) for i in range(3)]
    east = [make_venue(f'e{i}', 39.75 + 0.0005 * i, -104.9) for i in range(3)]
    clusters = clusterer.find_clusters(west + east)
    scores = {'w0': 0.2, 'w1': 0.4, 'w2': 0.3, 'e0': 0.9, 'e1': 0.8, 'e2': 0.7}
    scored = [_scored(k, v) for k, v in scores.items()]
    ranked = rank_clusters(clusters, scored)
    assert [c.cluster.member_ids for c in ranked][0] == {'e0', 'e1', 'e2'}
    assert ranked[0].score == pytest.approx(0.8)
    assert ranked[1].score == pytest.approx(0.3)
