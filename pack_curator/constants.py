"""
Константы для всего приложения.
Централизованное хранение всех магических чисел и строк.
"""

# ============= Archive Files =============
ARCHIVE_EXTENSION = ".jar"
DISABLED_SUFFIX = ".disabled"  # суффикс отключенного архива: mod.jar.disabled
ALLOWED_ARCHIVE_EXTENSIONS = [
    ARCHIVE_EXTENSION,
    ARCHIVE_EXTENSION + DISABLED_SUFFIX,
]

NESTED_ARCHIVE_SEPARATOR = "___"  # <container_id>___<file>.jar во временной папке
SCRATCH_DIR_PREFIX = "pack_curator_"

# ============= Manifests =============
FORGE_MANIFEST_PATH = "META-INF/mods.toml"
FABRIC_MANIFEST_PATH = "fabric.mod.json"

# Ключи с точками под этим префиксом ломают TOML (supplementaries и др.)
CORRUPT_KEY_PREFIX = "mixin."

LOADER_FORGE = "Forge"
LOADER_FABRIC = "Fabric"
LOADER_UNKNOWN = "N/A"

# ============= Dependencies =============
DEFAULT_IGNORED_DEPENDENCIES = [
    "java",
    "minecraft",
    "forge",
    "neoforge",
]

DEFAULT_EQUIVALENT_GROUPS = [
    ["puzzleslib", "puzzlesapi", "puzzlesaccessapi"],
    ["create", "flywheel", "ponder"],
    ["fabric", "fabricloader", "connector", "connectormod"],
    ["fabric-api", "fabric_api", "fabric-api-base", "fabric-resource-loader-v0", "fabric-rendering-v1"],
    ["owo", "owo-lib"],
    ["xaeroworldmap", "xaerosworldmap"],
    ["thermal_expansion", "thermal"],
]

# ============= External Links =============
CURSEFORGE_PROJECT_URL = "https://www.curseforge.com/projects/{project_id}"
MODRINTH_PROJECT_URL = "https://modrinth.com/mod/{project_id}"

# ============= Categories =============
UNCERTAIN_MARKER = "?"  # Library? / both? - предположение, ждет подтверждения
CATEGORY_LIBRARY = "Library"
CATEGORY_FIX = "Fix"
CATEGORY_ADDON = "Addon"
CATEGORY_INTEGRATION = "Integration"

DEFAULT_LIBRARY_MARKERS = ["api", "lib"]
DEFAULT_FIX_MARKERS = ["fix"]
DEFAULT_COMPAT_MARKERS = ["compat"]

# ============= Sides =============
SIDE_NOT_APPLICABLE = "N/A"
SIDE_UNKNOWN = "unknown"

# ============= Report =============
DEFAULT_REPORT_TITLE = "Pack Report"
REPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
STATUS_GONE = "❓"
STATUS_DISABLED = "❌"
STATUS_ENABLED = "✅"
PARENT_SEPARATOR = " > "

DEPENDENTS_TEXT_LIMIT = 30  # после этого - "<N> dependents"
DEPENDENCIES_TEXT_LIMIT = 20  # после этого - "<N> dependencies"
OPTIONAL_PREVIEW_LIMIT = 10  # сколько неудовлетворенных опциональных показать

REPORT_COLUMNS = [
    "",
    "Modloader",
    "Mod ID",
    "Name",
    "Side",
    "Category",
    "Dependents",
    "Deps (no libs)",
    "Opt. Deps (unsatisfied)",
]

# ============= Extraction =============
DEFAULT_EXTRACTION_WORKERS = 4  # параллельное чтение архивов

# ============= Default Paths =============
DEFAULT_MODS_DIR = "minecraft/mods"
DEFAULT_INDEX_DIR = "minecraft/mods/.index"
DEFAULT_REPORT_FILE = "mods.md"
DEFAULT_IGNORE_LIST_FILE = "ignoredOptDeps.txt"
