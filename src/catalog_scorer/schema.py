from __future__ import annotations

from dataclasses import dataclass, field

# Optional enrichment columns a catalog may carry for famous objects.
SIGNAL_COLUMNS = {
    "named_by_ancients": "bool",
    "has_active_mission": "bool",
    "planned_mission": "bool",
    "is_habitable": "bool",
    "in_solar_system": "bool",
    "has_images": "bool",
    "wikipedia_page_views": "int",
    "wikidata_sitelinks": "int",
    "wikidata_cultural_refs": "int",
    "paper_count": "int",
    "recent_paper_count": "int",
    "discovery_year": "int",
}

# Abbreviation -> full constellation name.
CONSTELLATION_NAMES = {
    "And": "Andromeda", "Ant": "Antlia", "Aps": "Apus", "Aqr": "Aquarius", "Aql": "Aquila",
    "Ara": "Ara", "Ari": "Aries", "Aur": "Auriga", "Boo": "Bootes", "Cae": "Caelum",
    "Cam": "Camelopardalis", "Cnc": "Cancer", "CVn": "Canes Venatici", "CMa": "Canis Major",
    "CMi": "Canis Minor", "Cap": "Capricornus", "Car": "Carina", "Cas": "Cassiopeia",
    "Cen": "Centaurus", "Cep": "Cepheus", "Cet": "Cetus", "Cha": "Chamaeleon",
    "Cir": "Circinus", "Col": "Columba", "Com": "Coma Berenices", "CrA": "Corona Australis",
    "CrB": "Corona Borealis", "Crv": "Corvus", "Crt": "Crater", "Cru": "Crux",
    "Cyg": "Cygnus", "Del": "Delphinus", "Dor": "Dorado", "Dra": "Draco",
    "Equ": "Equuleus", "Eri": "Eridanus", "For": "Fornax", "Gem": "Gemini",
    "Gru": "Grus", "Her": "Hercules", "Hor": "Horologium", "Hya": "Hydra",
    "Hyi": "Hydrus", "Ind": "Indus", "Lac": "Lacerta", "Leo": "Leo",
    "LMi": "Leo Minor", "Lep": "Lepus", "Lib": "Libra", "Lup": "Lupus",
    "Lyn": "Lynx", "Lyr": "Lyra", "Men": "Mensa", "Mic": "Microscopium",
    "Mon": "Monoceros", "Mus": "Musca", "Nor": "Norma", "Oct": "Octans",
    "Oph": "Ophiuchus", "Ori": "Orion", "Pav": "Pavo", "Peg": "Pegasus",
    "Per": "Perseus", "Phe": "Phoenix", "Pic": "Pictor", "Psc": "Pisces",
    "PsA": "Piscis Austrinus", "Pup": "Puppis", "Pyx": "Pyxis", "Ret": "Reticulum",
    "Sge": "Sagitta", "Sgr": "Sagittarius", "Sco": "Scorpius", "Scl": "Sculptor",
    "Sct": "Scutum", "Ser": "Serpens", "Sex": "Sextans", "Tau": "Taurus",
    "Tel": "Telescopium", "Tri": "Triangulum", "TrA": "Triangulum Australe",
    "Tuc": "Tucana", "UMa": "Ursa Major", "UMi": "Ursa Minor", "Vel": "Vela",
    "Vir": "Virgo", "Vol": "Volans", "Vul": "Vulpecula",
}


@dataclass(frozen=True)
class CatalogSchema:
    """Where each logical field lives in a delimited catalog.

    ``designations`` lists ``(column, display_prefix)`` pairs in priority
    order; the first non-empty one becomes the primary designation and the
    next one the secondary designation.
    """

    name: str
    catalog_label: str
    proper_name: str
    designations: tuple[tuple[str, str], ...]
    source_id: str | None = None
    catalog_column: str | None = None
    distance: str | None = None
    distance_unit: str = "ly"
    distance_sentinel: float | None = None
    parallax: str | None = None
    parallax_unit: str = "arcsec"
    apparent_magnitude: str | None = None
    absolute_magnitude: str | None = None
    spectral_type: str | None = None
    luminosity: str | None = None
    mass: str | None = None
    temperature: str | None = None
    constellation: str | None = None
    estimated_fields: str | None = None
    display_name: str | None = None
    required: tuple[str, ...] = ()
    # Groups where any one column satisfies the requirement.
    required_any: tuple[tuple[str, ...], ...] = ()
    signal_columns: tuple[str, ...] = field(default_factory=tuple)

    def missing_columns(self, header: list[str]) -> list[str]:
        present = {column.strip().lower() for column in header}
        missing = [column for column in self.required if column not in present]
        for group in self.required_any:
            if not present.intersection(group):
                missing.append("|".join(group))
        return missing


HYG_SCHEMA = CatalogSchema(
    name="hyg",
    catalog_label="HYG",
    proper_name="proper",
    designations=(("bf", ""), ("hd", "HD "), ("hip", "HIP "), ("hr", "HR "), ("gl", "Gliese ")),
    source_id="id",
    distance="dist",
    distance_unit="pc",
    # HYG marks missing or dubious parallaxes with a distance of 100000 pc.
    distance_sentinel=100_000.0,
    apparent_magnitude="mag",
    absolute_magnitude="absmag",
    spectral_type="spect",
    luminosity="lum",
    constellation="con",
    # bf and lum are read when present; not every HYG release carries them.
    required=("id", "proper", "hd", "hip", "hr", "gl", "dist", "mag", "absmag", "spect"),
)

GENERIC_COLUMNS = [
    "name",
    "designation",
    "alt_designation",
    "distance_ly",
    "parallax",
    "apparent_magnitude",
    "absolute_magnitude",
    "spectral_type",
    "luminosity",
    "mass",
    "temperature",
]

GENERIC_REQUIRED_COLUMNS = [
    "name",
    "designation",
    "alt_designation",
    "apparent_magnitude",
    "absolute_magnitude",
    "spectral_type",
    "luminosity",
    "mass",
]

# Either column is enough to place the object.
GENERIC_DISTANCE_COLUMNS = ("distance_ly", "parallax")

GENERIC_OPTIONAL_COLUMNS = ["temperature", "display_name", "source_id", "catalog", "constellation", "estimated_fields"]

GENERIC_SCHEMA = CatalogSchema(
    name="generic",
    catalog_label="CATALOG",
    proper_name="name",
    designations=(("designation", ""), ("alt_designation", "")),
    source_id="source_id",
    catalog_column="catalog",
    distance="distance_ly",
    distance_unit="ly",
    parallax="parallax",
    parallax_unit="arcsec",
    apparent_magnitude="apparent_magnitude",
    absolute_magnitude="absolute_magnitude",
    spectral_type="spectral_type",
    luminosity="luminosity",
    mass="mass",
    temperature="temperature",
    constellation="constellation",
    estimated_fields="estimated_fields",
    display_name="display_name",
    required=tuple(GENERIC_REQUIRED_COLUMNS),
    required_any=(GENERIC_DISTANCE_COLUMNS,),
    signal_columns=tuple(SIGNAL_COLUMNS),
)

SCHEMAS = {schema.name: schema for schema in (HYG_SCHEMA, GENERIC_SCHEMA)}
SCHEMA_CHOICES = ("auto", *SCHEMAS)


def detect_schema(header: list[str]) -> CatalogSchema:
    if not HYG_SCHEMA.missing_columns(header):
        return HYG_SCHEMA
    return GENERIC_SCHEMA


def schema_by_name(name: str) -> CatalogSchema | None:
    """Return the named schema, or ``None`` for ``auto`` (detect from header)."""
    key = name.strip().lower()
    if key == "auto":
        return None
    if key not in SCHEMAS:
        raise KeyError(f"Unknown catalog schema: {name!r} (expected one of {', '.join(SCHEMA_CHOICES)})")
    return SCHEMAS[key]
