import pytest
from botcore.schemas import BotConfig, ScoreBreakdown
from botcore.services.pathing import ImpossibleTiles
from botcore.services.scorer import PAIR_FACTORS, TARGET_FACTORS, MoveScorer, best_move, format_breakdown
from tests.board_util import grid_board, parse_board, random_board, row_board


def _conquest_board(turn=75):
    """5x5, all ours except a lone enemy tile in the far corner."""
    overrides = {(0, 0): "g0:10", (4, 4): "1:1"}
    return grid_board(5, 5, fill="0:10", overrides=overrides, turn=turn)


class TestCandidates:
    def test_no_source_means_no_candidate(self):
        snap = parse_board("""
            g0:1 0:1 .
            .    .   1:3
        """)
        assert MoveScorer(snap, ImpossibleTiles()).sources() == []
        assert best_move(snap, ImpossibleTiles()) is None

    def test_targets_exclude_own_fog_mountains_and_impossible(self):
        snap = row_board(["g0:5", "0:3", ".", "#", "?", "%", "1:2", "c-1:40"])
        scorer = MoveScorer(snap, ImpossibleTiles([6]))
        assert scorer.sources() == [0, 1]
        assert scorer.targets() == [2, 7]

    def test_teammate_tiles_are_not_targets(self):
        snap = row_board(["g0:5", "1:1", "2:1"], teams={0: 0, 1: 0, 2: 2})
        assert MoveScorer(snap, ImpossibleTiles()).targets() == [2]

    def test_impossible_target_is_never_selected(self):
        snap = row_board(["g0:9", "."])
        assert best_move(snap, ImpossibleTiles()).target == 1
        assert best_move(snap, ImpossibleTiles([1])) is None


class TestVeto:
    def test_neutral_city_needs_a_safety_margin(self):
        # outnumbered penalty off, so only the veto keeps the city out
        config = BotConfig(outnumbered_penalty=0.0)
        snap = row_board(["g0:5", "c-1:4", "."])
        scorer = MoveScorer(snap, ImpossibleTiles(), config)
        move = scorer.best_move()
        assert move is not None
        assert move.target == 2
        # the city would have won on points
        assert scorer.breakdown(0, 1).total > move.score

    def test_neutral_city_taken_with_enough_army(self):
        config = BotConfig(outnumbered_penalty=0.0)
        snap = row_board(["g0:7", "c-1:4", "."])
        move = best_move(snap, ImpossibleTiles(), config)
        assert move.target == 1

    def test_enemy_city_is_not_vetoed(self):
        snap = row_board(["g0:5", "c1:4"])
        scorer = MoveScorer(snap, ImpossibleTiles(), BotConfig(outnumbered_penalty=0.0))
        assert not scorer._vetoed(5, scorer.target_info(1))


class TestFactors:
    def test_factor_tables_cover_the_breakdown_once(self):
        names = [name for name, _ in TARGET_FACTORS] + list(PAIR_FACTORS)
        assert len(names) == len(set(names))
        assert set(names) == set(ScoreBreakdown.model_fields)

    def test_target_base_is_the_sum_of_target_factors(self):
        snap = row_board(["g0:20", "c1:4", "."])
        scorer = MoveScorer(snap, ImpossibleTiles())
        info = scorer.target_info(1)
        b = scorer.breakdown(0, 1)
        expected = sum(getattr(b, name) for name, _ in TARGET_FACTORS)
        assert info.base == pytest.approx(expected)
        assert info.ceiling >= b.total

    def test_breakdown_total_is_the_candidate_score(self):
        snap = _conquest_board()
        scorer = MoveScorer(snap, ImpossibleTiles())
        move = scorer.best_move()
        assert move.breakdown.total == pytest.approx(move.score)
        assert move.breakdown == scorer.breakdown(move.source, move.target)

    def test_outnumber_is_capped_and_only_against_enemies(self):
        snap = row_board(["g0:500", "1:1", "."])
        scorer = MoveScorer(snap, ImpossibleTiles())
        assert scorer.breakdown(0, 1).outnumber == pytest.approx(0.3)
        assert scorer.breakdown(0, 2).outnumber == 0.0
        assert scorer.breakdown(0, 2).empty == pytest.approx(0.08)
        assert scorer.breakdown(0, 1).hostile == pytest.approx(0.05)

    def test_outnumbered_and_overextension_penalties(self):
        snap = row_board(["g0:3", "1:2", ".", ".", ".", "."])
        scorer = MoveScorer(snap, ImpossibleTiles())
        assert scorer.breakdown(0, 1).outnumbered == pytest.approx(-0.2)
        assert scorer.breakdown(0, 2).outnumbered == 0.0
        assert scorer.breakdown(0, 5).overextension == pytest.approx(-0.2)
        assert scorer.breakdown(0, 2).overextension == 0.0

    def test_distance_penalty_is_clipped(self):
        snap = row_board(["g0:90"] + ["."] * 39)
        scorer = MoveScorer(snap, ImpossibleTiles())
        assert scorer.breakdown(0, 3).distance == pytest.approx(-0.5 * 3 / 30)
        assert scorer.breakdown(0, 39).distance == pytest.approx(-0.3)

    def test_general_threat_grows_near_home(self):
        snap = row_board(["g0:50", "1:10", ".", ".", ".", "1:10"])
        scorer = MoveScorer(snap, ImpossibleTiles())
        near = scorer.breakdown(0, 1).general_threat
        far = scorer.breakdown(0, 5).general_threat
        assert near > far > 0

    def test_general_threat_scales_with_defender(self):
        # both defenders sit next to the capital
        snap = row_board(["1:2", "g0:50", "1:8"])
        scorer = MoveScorer(snap, ImpossibleTiles())
        weak = scorer.breakdown(1, 0).general_threat
        strong = scorer.breakdown(1, 2).general_threat
        assert weak == pytest.approx(0.2 * 0.2)
        assert strong == pytest.approx(0.2 * 0.8)

    def test_enemy_general_bonus(self):
        snap = row_board(["g0:50", "g1:2"])
        assert MoveScorer(snap, ImpossibleTiles()).breakdown(0, 1).enemy_general == pytest.approx(0.15)

    def test_centerness_prefers_the_middle(self):
        snap = grid_board(5, 5, overrides={(0, 0): "g0:20"})
        scorer = MoveScorer(snap, ImpossibleTiles())
        assert scorer.breakdown(0, snap.index(2, 2)).centerness > scorer.breakdown(0, snap.index(0, 4)).centerness

    def test_isolation_prefers_tiles_away_from_our_border(self):
        snap = parse_board("""
            g0:20 0:2 .   .
            0:2   0:2 .   .
            .     .   .   .
        """)
        scorer = MoveScorer(snap, ImpossibleTiles())
        border = scorer.breakdown(0, snap.index(2, 0)).isolation
        deep = scorer.breakdown(0, snap.index(2, 3)).isolation
        assert deep > border
        assert deep == pytest.approx(0.05)

    def test_alignment_rewards_moves_toward_the_enemy_mass(self):
        # capital at column 0, enemy mass at column 9, equal targets at 1 and 9
        snap = row_board(["g0:20", "1:3"] + ["."] * 7 + ["1:3"])
        scorer = MoveScorer(snap, ImpossibleTiles(), hostile_center=9)
        near = scorer.breakdown(0, 1)
        far = scorer.breakdown(0, 9)
        assert far.alignment > near.alignment
        for name in ("outnumber", "outnumbered", "hostile", "city", "enemy_general", "empty"):
            assert getattr(far, name) == getattr(near, name)

    def test_alignment_decides_when_everything_else_is_equal(self):
        config = BotConfig(distance_weight=0.0, general_threat_weight=0.0, centerness_weight=0.0,
                           isolation_weight=0.0)
        snap = row_board(["g0:20", "1:3"] + ["."] * 7 + ["1:3"])
        scorer = MoveScorer(snap, ImpossibleTiles(), config, hostile_center=9)
        assert scorer.breakdown(0, 9).total > scorer.breakdown(0, 1).total

    def test_no_alignment_without_known_enemy(self):
        snap = row_board(["g0:20", ".", "."])
        assert MoveScorer(snap, ImpossibleTiles()).breakdown(0, 2).alignment == 0.0

    def test_format_breakdown_lists_every_factor(self):
        snap = row_board(["g0:20", "1:2"])
        lines = format_breakdown(MoveScorer(snap, ImpossibleTiles()).breakdown(0, 1))
        assert len(lines) == len(ScoreBreakdown.model_fields)
        assert lines[0].strip().startswith("outnumber:")
        assert format_breakdown(None) == []


class TestSelection:
    def test_conquest_picks_a_tile_next_to_the_enemy(self):
        snap = _conquest_board()
        move = best_move(snap, ImpossibleTiles())
        assert move is not None
        assert move.target == snap.index(4, 4)
        assert move.source in (snap.index(3, 4), snap.index(4, 3))

    def test_ties_go_to_the_first_candidate(self):
        snap = _conquest_board()
        scorer = MoveScorer(snap, ImpossibleTiles())
        a = scorer.breakdown(snap.index(3, 4), snap.index(4, 4))
        b = scorer.breakdown(snap.index(4, 3), snap.index(4, 4))
        assert a.total == b.total
        assert scorer.best_move().source == snap.index(3, 4)

    def test_nothing_positive_means_no_candidate(self):
        # one far, walled-off, overwhelming enemy tile
        snap = row_board(["g0:2", "#", "#", "#", "1:40"])
        assert best_move(snap, ImpossibleTiles()) is None

    def test_skipping_hopeless_targets_keeps_the_winner(self):
        for seed in (1, 2, 3):
            snap = random_board(9, 7, seed)
            scorer = MoveScorer(snap, ImpossibleTiles())
            best_total = 0.0
            for source in scorer.sources():
                armies = snap.tiles[source].armies
                for target in scorer.targets():
                    if scorer._vetoed(armies, scorer.target_info(target)):
                        continue
                    best_total = max(best_total, scorer.breakdown(source, target).total)
            move = scorer.best_move()
            assert move is not None
            assert move.score == pytest.approx(best_total)
            assert scorer.breakdown(move.source, move.target).total == pytest.approx(best_total)
