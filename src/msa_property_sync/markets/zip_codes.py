"""County-level zip code lists per MSA.

Entries are checked in table order and the first match wins. Some zip codes
sit in more than one list on purpose (92672 San Clemente is listed under both
Orange and San Diego; 90631 La Habra under both Orange and Los Angeles), so
Orange is listed before San Diego and Los Angeles. Add a market by appending
its counties to ``ZIP_TABLE``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import FrozenSet, Tuple, Union


LOS_ANGELES_MSA = "Los Angeles-Long Beach-Anaheim, CA"
SAN_DIEGO_MSA = "San Diego-Chula Vista-Carlsbad, CA"
DENVER_MSA = "Denver-Aurora-Centennial, CO"
SAN_FRANCISCO_MSA = "San Francisco-Oakland-Fremont, CA"


ZipSpec = Union[int, Tuple[int, int]]


@dataclass(frozen=True)
class CountyZipList:
    msa: str
    county: str
    zips: FrozenSet[str]


def _zips(*specs: ZipSpec) -> FrozenSet[str]:
    """Expand ints and inclusive ``(start, end)`` ranges to 5-digit strings."""

    out = set()
    for spec in specs:
        if isinstance(spec, tuple):
            start, end = spec
            out.update(f"{z:05d}" for z in range(start, end + 1))
        else:
            out.add(f"{spec:05d}")
    return frozenset(out)


ORANGE = CountyZipList(
    msa=LOS_ANGELES_MSA,
    county="Orange",
    zips=_zips(
        90620, 90621, 90623, 90630, 90631, 90680, 90720, 90740, 90742, 90743,
        (92602, 92610), 92614, 92617, 92618, 92620, (92624, 92630), 92637,
        (92646, 92649), 92651, 92653, (92655, 92657), (92660, 92663),
        (92672, 92679), 92683, 92688, 92691, 92692, 92694, (92701, 92708),
        92780, 92782, (92801, 92808), 92821, 92823, (92831, 92835),
        (92840, 92845), 92861, (92865, 92870), 92886, 92887,
    ),
)

SAN_DIEGO = CountyZipList(
    msa=SAN_DIEGO_MSA,
    county="San Diego",
    zips=_zips(
        (91901, 91917), 91931, 91932, 91934, 91935, 91941, 91942, 91945,
        91950, 91962, 91963, 91977, 91978, 91980, 92003, 92004, 92007,
        (92008, 92011), 92014, (92019, 92029), 92036, 92037, 92040, 92054,
        92055, 92056, 92057, 92058, 92059, 92060, 92061, (92064, 92071),
        92075, 92078, (92081, 92084), 92086, 92091, (92101, 92131), 92139,
        92154, 92173, 92672,
    ),
)

LOS_ANGELES = CountyZipList(
    msa=LOS_ANGELES_MSA,
    county="Los Angeles",
    zips=_zips(
        (90001, 90008), (90010, 90049), (90056, 90069), 90071, 90077,
        90089, 90094, 90095, 90201, (90210, 90212), 90220, 90221, 90222,
        90230, 90232, (90240, 90242), 90245, (90247, 90250), 90254, 90255,
        (90260, 90266), 90270, 90272, (90274, 90278), 90280, (90290, 90293),
        (90301, 90305), (90401, 90405), (90501, 90505), (90601, 90606),
        90631, 90638, 90640, 90650, 90660, 90670, 90701, 90703, 90706,
        90710, (90712, 90717), 90723, 90731, 90732, (90744, 90746), 90755,
        (90802, 90815), 91001, 91006, 91007, 91010, 91011, 91016, 91024,
        91030, (91040, 91042), (91101, 91108), (91201, 91208),
        (91301, 91311), 91316, 91321, (91324, 91326), 91331, 91335, 91340,
        (91342, 91345), (91350, 91356), 91364, 91367, (91401, 91406), 91411,
        91423, 91436, (91501, 91506), (91601, 91607), 91702, 91706, 91711,
        (91722, 91724), (91731, 91733), 91740, 91741, (91744, 91748), 91750,
        91754, 91755, (91765, 91768), 91770, 91773, 91775, 91776, 91780,
        (91789, 91792), 91801, 91803, 93510, 93532, (93534, 93536), 93543,
        93544, (93550, 93553), 93591,
    ),
)

DENVER = CountyZipList(
    msa=DENVER_MSA,
    county="Denver",
    zips=_zips(
        (80202, 80212), 80216, (80218, 80224), 80230, 80231,
        (80237, 80239), 80246, 80249, 80264, 80290, 80293, 80294,
    ),
)

ARAPAHOE = CountyZipList(
    msa=DENVER_MSA,
    county="Arapahoe",
    zips=_zips(
        (80010, 80019), 80102, 80103, 80105, (80110, 80113),
        (80120, 80122), 80136, 80137,
    ),
)

JEFFERSON = CountyZipList(
    msa=DENVER_MSA,
    county="Jefferson",
    zips=_zips(
        (80001, 80005), 80007, 80033, 80123, 80127, 80128,
        (80226, 80228), 80232, 80235, 80401, 80403, 80439, 80465,
    ),
)

ADAMS = CountyZipList(
    msa=DENVER_MSA,
    county="Adams",
    zips=_zips(
        80022, 80024, 80030, 80031, 80221, 80229, 80233, 80234, 80241,
        80260, (80601, 80603), 80640,
    ),
)

DOUGLAS = CountyZipList(
    msa=DENVER_MSA,
    county="Douglas",
    zips=_zips(
        80104, 80108, 80109, 80116, 80118, (80124, 80126), (80129, 80131),
        80134, 80135, 80138,
    ),
)

BROOMFIELD = CountyZipList(
    msa=DENVER_MSA,
    county="Broomfield",
    zips=_zips(80020, 80021, 80023),
)

SAN_FRANCISCO = CountyZipList(
    msa=SAN_FRANCISCO_MSA,
    county="San Francisco",
    zips=_zips(
        (94102, 94112), (94114, 94118), (94121, 94124), 94127,
        (94129, 94134), 94158,
    ),
)

SAN_MATEO = CountyZipList(
    msa=SAN_FRANCISCO_MSA,
    county="San Mateo",
    zips=_zips(
        94002, 94005, 94010, 94014, 94015, 94019, 94025, 94027, 94030,
        94044, (94061, 94066), 94070, 94080, (94401, 94404),
    ),
)

ALAMEDA = CountyZipList(
    msa=SAN_FRANCISCO_MSA,
    county="Alameda",
    zips=_zips(
        94501, 94502, (94536, 94546), 94550, 94552, 94555, 94560, 94566,
        94568, (94577, 94580), 94586, 94587, (94601, 94621), (94702, 94710),
    ),
)

CONTRA_COSTA = CountyZipList(
    msa=SAN_FRANCISCO_MSA,
    county="Contra Costa",
    zips=_zips(
        94505, 94506, 94507, 94509, 94513, (94517, 94521), 94523, 94526,
        94530, 94547, 94549, 94553, 94556, 94561, (94563, 94565), 94582,
        94583, (94595, 94598), (94801, 94806),
    ),
)

MARIN = CountyZipList(
    msa=SAN_FRANCISCO_MSA,
    county="Marin",
    zips=_zips(
        94901, 94903, 94904, 94920, 94925, 94930, 94939, 94941, 94945,
        94947, 94949, 94960,
    ),
)


ZIP_TABLE: Tuple[CountyZipList, ...] = (
    ORANGE,
    SAN_DIEGO,
    LOS_ANGELES,
    DENVER,
    ARAPAHOE,
    JEFFERSON,
    ADAMS,
    DOUGLAS,
    BROOMFIELD,
    SAN_FRANCISCO,
    SAN_MATEO,
    ALAMEDA,
    CONTRA_COSTA,
    MARIN,
)
