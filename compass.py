import math
from collections import namedtuple


CENTER = (50.0, 50.0)
RADIUS = 50.0

MILD = "Mild"
MODERATE = "Moderate"
INTENSE = "Intense"

NEUTRAL_RADIUS = 0.2
MILD_LIMIT = 0.3
MODERATE_LIMIT = 0.7

POPULARITY_DESC = "popularity.desc"
VOTE_AVERAGE_DESC = "vote_average.desc"

NEUTRAL_DESCRIPTION = "Neutral mood, open to various types of content"
NEUTRAL_TIP = (
    "You're at the center of the mood compass! "
    "Explore by moving the marker toward moods that interest you most."
)

Point = namedtuple("Point", ["x", "y"])
Polar = namedtuple("Polar", ["angle", "distance"])
Classification = namedtuple("Classification", ["sector", "intensity", "neutral"])


def _sector(name, center_angle, genre_ids, description, tip):
    return {
        "name": name,
        "center_angle": center_angle,
        "genre_ids": frozenset(genre_ids),
        "low_sort": POPULARITY_DESC,
        "high_sort": VOTE_AVERAGE_DESC,
        "description": description,
        "tip": tip,
    }


# Declaration order is the tie-break order.
MOOD_SECTORS = (
    _sector(
        "Cheerful", 0, [35, 10751, 16],
        "In the mood for fun and lightheartedness",
        "Movies and shows that will make you smile and enjoy lighthearted moments.",
    ),
    _sector(
        "Energetic", 45, [28, 12, 53],
        "Craving adrenaline and excitement",
        "Get ready for breathtaking adventures and action-packed stories.",
    ),
    _sector(
        "Reflective", 90, [18, 10749],
        "Seeking emotional and profound stories",
        "Emotional and deep stories that will resonate with your current state of mind.",
    ),
    _sector(
        "Curious", 135, [9648, 80, 53],
        "Eager to discover and investigate",
        "Intrigues, mysteries, and cases to solve will keep you on the edge of your seat.",
    ),
    _sector(
        "Intellectual", 180, [99, 36],
        "Wanting to learn and explore deeper",
        "Documentaries and fact-based stories to enrich your knowledge.",
    ),
    _sector(
        "Dreamy", 225, [14, 878, 16],
        "Seeking escape into fantastic worlds",
        "Fantastic content that will take you to imaginary worlds rich with magic.",
    ),
    _sector(
        "Thoughtful", 270, [27, 53, 9648],
        "Looking for tension and strong emotions",
        "Intense stories that explore the depths of the human soul.",
    ),
    _sector(
        "Nostalgic", 315, [16, 10751, 10402],
        "In need of comfort and familiarity",
        "Films that evoke comforting memories and make you feel at home.",
    ),
)


def sector_by_name(name):
    for sector in MOOD_SECTORS:
        if sector["name"].lower() == str(name).lower():
            return sector
    return None


def clamp_position(x, y):
    return Point(_clamp(float(x), 0.0, 100.0), _clamp(float(y), 0.0, 100.0))


def to_polar(x, y):
    dx = x - CENTER[0]
    dy = y - CENTER[1]
    distance = min(1.0, math.hypot(dx, dy) / RADIUS)
    # 0 degrees is north (negative y on screen), clockwise.
    angle = math.degrees(math.atan2(dy, dx)) + 90
    if angle < 0:
        angle += 360
    if angle >= 360:
        angle -= 360
    return Polar(angle, distance)


def to_cartesian(angle, distance):
    angle_rad = math.radians(angle - 90)
    x = CENTER[0] + distance * RADIUS * math.cos(angle_rad)
    y = CENTER[1] + distance * RADIUS * math.sin(angle_rad)
    return Point(x, y)


def angular_distance(a, b):
    delta = abs(a - b) % 360
    return min(delta, 360 - delta)


def nearest_sector(angle):
    best = MOOD_SECTORS[0]
    best_delta = angular_distance(angle, best["center_angle"])
    for sector in MOOD_SECTORS[1:]:
        delta = angular_distance(angle, sector["center_angle"])
        # Strict comparison keeps the earlier sector on an exact tie.
        if delta < best_delta:
            best = sector
            best_delta = delta
    return best


def intensity_for(distance):
    if distance < MILD_LIMIT:
        return MILD
    if distance < MODERATE_LIMIT:
        return MODERATE
    return INTENSE


def classify(polar):
    angle, distance = polar
    return Classification(
        sector=nearest_sector(angle),
        intensity=intensity_for(distance),
        neutral=distance < NEUTRAL_RADIUS,
    )


def classify_position(x, y):
    point = clamp_position(x, y)
    return classify(to_polar(point.x, point.y))


def describe(classification):
    if classification.neutral:
        return NEUTRAL_DESCRIPTION
    return f"{classification.intensity} {classification.sector['name'].lower()} mood"


def mood_tip(classification):
    if classification.neutral:
        return NEUTRAL_TIP
    return classification.sector["tip"]


def sector_markers(distance=0.8):
    markers = []
    for sector in MOOD_SECTORS:
        point = to_cartesian(sector["center_angle"], distance)
        markers.append({"name": sector["name"], "x": point.x, "y": point.y})
    return markers


def _clamp(value, low, high):
    if math.isnan(value):
        return (low + high) / 2
    return max(low, min(high, value))
