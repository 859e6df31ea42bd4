from lexiboard import db
from lexiboard.models import PlayerStats
from lexiboard.services.games import gameplay, matchmaking, stats

T0 = 1_000_000.0
CAT = [[0, 0], [0, 1], [0, 2]]


def any_word(word):
    return True


def scores(points):
    return lambda word, path, board: points


def stats_of(user_id):
    db.session.expire_all()
    return PlayerStats.query.filter_by(user_id=user_id).one()


def play_solo(template_id, user_id, points, now):
    """One-move solo run; 400 or more wins, anything less loses."""
    session = matchmaking.start_solo(user_id, template_id, now=now)
    gameplay.play_move(session.id, user_id, CAT, any_word, scores(points), now=now + 1)
    return session.id


def one_turn_template(make_template):
    return make_template(win_condition={'target': 400, 'turn_limit': 1})


def test_solo_results_build_streaks_and_levels(make_template, users):
    template_id = one_turn_template(make_template).id
    play_solo(template_id, users[0], 450, T0)
    first = stats_of(users[0])
    assert (first.total_games_played, first.total_wins, first.total_losses) == (1, 1, 0)
    assert first.current_streak == first.longest_streak == 1
    assert first.highest_score == 450
    assert first.total_words_formed == 1
    assert (first.experience_points, first.level) == (450, 1)

    play_solo(template_id, users[0], 700, T0 + 10)
    play_solo(template_id, users[0], 100, T0 + 20)
    after = stats_of(users[0])
    assert (after.total_games_played, after.total_wins, after.total_losses) == (3, 2, 1)
    assert after.current_streak == 0
    assert after.longest_streak == 2
    assert after.highest_score == 700
    assert after.total_words_formed == 3
    assert (after.experience_points, after.level) == (1250, 2)


def test_unfinished_sessions_leave_stats_alone(make_template, users):
    session = matchmaking.start_solo(users[0], make_template().id, now=T0)
    gameplay.play_move(session.id, users[0], CAT, any_word, scores(10), now=T0 + 1)
    assert PlayerStats.query.count() == 0

    fresh = stats.stats_for(users[0]).to_dict()
    assert fresh['username'] == 'alice'
    assert fresh['total_games_played'] == 0
    assert fresh['level'] == 1
    assert PlayerStats.query.count() == 0


def test_multiplayer_result_counts_for_every_seat(make_template, users):
    template = make_template(win_condition={'target': 100})
    matchmaking.join_random(users[0], template.id, True, 2, now=T0)
    session_id = matchmaking.join_random(users[1], template.id, True, 2, now=T0).id
    gameplay.play_move(session_id, users[0], CAT, any_word, scores(150), now=T0 + 1)

    winner, loser = stats_of(users[0]), stats_of(users[1])
    assert (winner.total_wins, winner.total_losses, winner.current_streak) == (1, 0, 1)
    assert (loser.total_wins, loser.total_losses, loser.current_streak) == (0, 1, 0)
    assert loser.total_games_played == 1
    assert (loser.total_words_formed, loser.experience_points) == (0, 0)


def test_abandoned_match_is_played_but_not_decided(make_template, users):
    play_solo(one_turn_template(make_template).id, users[0], 450, T0)
    template = make_template(win_condition={'target': 10_000})
    matchmaking.join_random(users[0], template.id, True, 2, now=T0)
    session_id = matchmaking.join_random(users[1], template.id, True, 2, now=T0).id
    now = T0
    for _ in range(4):
        now += 121
        state = gameplay.session_state(session_id, now=now)
    assert state['outcome'] == 'abandoned'

    alice = stats_of(users[0])
    assert (alice.total_games_played, alice.total_wins, alice.total_losses) == (2, 1, 0)
    assert (alice.current_streak, alice.longest_streak) == (0, 1)
    assert stats_of(users[1]).total_losses == 0


def test_global_leaderboard_orders_by_experience(make_template, users):
    template_id = one_turn_template(make_template).id
    play_solo(template_id, users[0], 450, T0)
    play_solo(template_id, users[1], 900, T0)
    play_solo(template_id, users[2], 100, T0)
    board = stats.global_leaderboard()
    assert [row['username'] for row in board] == ['bob', 'alice', 'cara']
    assert board[0] == {
        'user_id': users[1], 'username': 'bob', 'level': 1, 'experience_points': 900, 'total_wins': 1,
    }
    assert len(stats.global_leaderboard(limit=2)) == 2


def test_weekly_leaderboard_counts_wins_since_monday(make_template, users):
    template_id = one_turn_template(make_template).id
    play_solo(template_id, users[0], 450, T0)
    play_solo(template_id, users[0], 450, T0 + 60)
    play_solo(template_id, users[1], 450, T0 + 120)
    play_solo(template_id, users[2], 100, T0 + 180)

    board = stats.weekly_leaderboard(now=T0 + 3600)
    assert [(row['username'], row['wins_this_week']) for row in board] == [('alice', 2), ('bob', 1)]
    assert board[0]['current_streak'] == 2
    assert stats.weekly_leaderboard(now=T0 + 7 * 86400) == []


def test_week_starts_on_monday_utc():
    # 1970-01-12 was a Monday
    assert stats.week_start(T0) == 950_400.0
    assert stats.week_start(950_400.0) == 950_400.0
    assert stats.week_start(950_399.0) == 950_400.0 - 7 * 86400
