import factory

from tourscore.models import (
    Group,
    HoleSpec,
    Round,
    RoundPlayer,
    ScoreRow,
    Tour,
    TourPlayer,
    TourSnapshot,
)

COURSE_ID = "course-1"


class TourFactory(factory.Factory):
    class Meta:
        model = Tour

    id = "tour-1"
    name = "Spring Tour"
    rehandicapping_enabled = True


class RoundFactory(factory.Factory):
    class Meta:
        model = Round

    round_no = factory.Sequence(lambda n: n + 1)
    id = factory.LazyAttribute(lambda obj: f"r{obj.round_no}")
    tour_id = "tour-1"
    course_id = COURSE_ID


class TourPlayerFactory(factory.Factory):
    class Meta:
        model = TourPlayer

    id = factory.Sequence(lambda n: f"p{n + 1}")
    name = factory.LazyAttribute(lambda obj: obj.id)
    starting_handicap = 0
    tee = "M"


class RoundPlayerFactory(factory.Factory):
    class Meta:
        model = RoundPlayer

    round_id = "r1"
    player_id = "p1"
    playing = True
    playing_handicap = None
    tee = None


class HoleSpecFactory(factory.Factory):
    class Meta:
        model = HoleSpec

    course_id = COURSE_ID
    hole_number = 1
    par = 4
    stroke_index = factory.LazyAttribute(lambda obj: obj.hole_number)
    tee = "M"


class ScoreRowFactory(factory.Factory):
    class Meta:
        model = ScoreRow

    round_id = "r1"
    player_id = "p1"
    hole_number = 1
    strokes = 4
    pickup = False


class GroupFactory(factory.Factory):
    class Meta:
        model = Group

    id = factory.Sequence(lambda n: f"group-{n + 1}")
    name = factory.LazyAttribute(lambda obj: obj.id)
    kind = "pair"
    member_ids = ()
    team_index = None


def flat_course(course_id=COURSE_ID, par=4, tee="M", holes=range(1, 19)):
    """Every hole the same par, stroke index equal to the hole number."""
    return [HoleSpecFactory(course_id=course_id, hole_number=hole, par=par, tee=tee) for hole in holes]


def card(round_id, player_id, strokes):
    """Score rows for holes 1..n; "P" is a pickup and None leaves the hole blank."""
    if isinstance(strokes, int):
        strokes = [strokes] * 18
    rows = []
    for hole, value in enumerate(strokes, 1):
        if value is None:
            continue
        if value == "P":
            rows.append(ScoreRowFactory(round_id=round_id, player_id=player_id, hole_number=hole, strokes=None, pickup=True))
        else:
            rows.append(ScoreRowFactory(round_id=round_id, player_id=player_id, hole_number=hole, strokes=value))
    return rows


def tour_rounds(count, tour_id="tour-1", course_id=COURSE_ID):
    return [RoundFactory(round_no=n, tour_id=tour_id, course_id=course_id) for n in range(1, count + 1)]


def playing(round_id, player_id, handicap=None, tee=None):
    return RoundPlayerFactory(round_id=round_id, player_id=player_id, playing_handicap=handicap, tee=tee)


def make_snapshot(
    players,
    rounds,
    round_players=(),
    scores=(),
    holes=None,
    groups=(),
    team_best_y=2,
    enabled=True,
):
    return TourSnapshot(
        tour=TourFactory(rehandicapping_enabled=enabled),
        rounds=tuple(rounds),
        players=tuple(players),
        round_players=tuple(round_players),
        holes=tuple(flat_course() if holes is None else holes),
        scores=tuple(scores),
        groups=tuple(groups),
        team_best_y=team_best_y,
    )


def player(player_id, name=None, starting_handicap=0, tee="M"):
    return TourPlayerFactory(id=player_id, name=name or player_id, starting_handicap=starting_handicap, tee=tee)


def group(group_id, kind, *member_ids, name=None, team_index=None):
    return GroupFactory(id=group_id, name=name or group_id, kind=kind, member_ids=tuple(member_ids), team_index=team_index)
