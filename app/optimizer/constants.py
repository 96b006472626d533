APP_NAME = "Profile Optimizer Core"
APP_VERSION = "1.0.0"
DEFAULT_DB_PATH = "optimizer_sessions.db"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_CORS_ALLOW_ORIGINS = [
	"http://localhost",
	"http://127.0.0.1",
	"http://localhost:5173",
]
DEFAULT_TRUSTED_HOSTS = [
	"127.0.0.1",
	"localhost",
	"testserver",
]
SQLITE_BUSY_TIMEOUT_MS = 5000

PROVIDER_PRIORITY = ("openai", "anthropic", "google", "cohere")
PROVIDER_ENV_KEYS = {
	"openai": "OPENAI_API_KEY",
	"anthropic": "ANTHROPIC_API_KEY",
	"google": "GOOGLE_AI_API_KEY",
	"cohere": "COHERE_API_KEY",
}

AUTO_MODEL_IDS = frozenset({"auto", "smart"})
DEFAULT_MODEL_ID = "gpt-4"
MODEL_TABLE = {
	"gpt-4": ("openai", "gpt-4"),
	"claude-3": ("anthropic", "claude-3-sonnet-20240229"),
	"gemini-pro": ("google", "gemini-pro"),
	"command": ("cohere", "command"),
}
PROVIDER_DEFAULT_MODEL_ID = {
	"openai": "gpt-4",
	"anthropic": "claude-3",
	"google": "gemini-pro",
	"cohere": "command",
}

# Context window ceilings in tokens, keyed by vendor model name.
MODEL_CONTEXT_CEILINGS = {
	"gpt-4": 8192,
	"claude-3-sonnet-20240229": 200000,
	"gemini-pro": 32760,
	"command": 4096,
}
DEFAULT_CONTEXT_CEILING = 4096
CHARS_PER_TOKEN = 4

MODEL_CATALOG = [
	{
		"id": "gpt-4",
		"name": "GPT-4",
		"provider": "openai",
		"capabilities": ["text-generation", "analysis", "optimization"],
		"strengths": ["Creative writing", "Comprehensive analysis", "Industry insights"],
	},
	{
		"id": "claude-3",
		"name": "Claude 3",
		"provider": "anthropic",
		"capabilities": ["text-generation", "analysis", "optimization"],
		"strengths": ["Professional tone", "Clarity", "Authenticity"],
	},
	{
		"id": "gemini-pro",
		"name": "Gemini Pro",
		"provider": "google",
		"capabilities": ["text-generation", "analysis", "multimodal"],
		"strengths": ["Technical profiles", "Data analysis", "Multilingual"],
	},
	{
		"id": "command",
		"name": "Command",
		"provider": "cohere",
		"capabilities": ["text-generation", "classification", "embeddings"],
		"strengths": ["Business writing", "Classification", "Semantic search"],
	},
]

TECH_KEYWORDS = ("software", "developer", "engineer", "tech", "programming")
EXECUTIVE_KEYWORDS = ("ceo", "cto", "director", "manager", "lead")

PROGRESS_STEPS = (
	("Analyzing profile structure", 20),
	("Evaluating content quality", 25),
	("Generating recommendations", 30),
	("Optimizing suggestions", 25),
)
PROGRESS_START_STATUS = "Starting analysis..."
PROGRESS_COMPLETE_STATUS = "complete"
PROGRESS_FINAL_STEP = "Finalizing results"

SECTION_SCORE_KEYS = ("headline", "summary", "experience", "skills", "completeness", "engagement")
IMPACT_LEVELS = ("high", "medium", "low")
BASE_SCORE = 75
POINTS_PER_IMPROVEMENT = 3
MAX_SCORE = 100
