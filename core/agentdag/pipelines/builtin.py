"""
Built-in data-analysis pipelines.

Both start from an ingest agent that writes pandas code against the
``DATA_FILE_PATH`` placeholder; the sandbox substitutes the real path.

    deterministic:  ingest -> summarizer
                    ingest -> cleaning -> analytics -> visualization

    creative:       ingest -> hypothesis-generator
                    ingest -> pattern-finder -> creative-analytics -> creative-viz
"""

from agentdag.graph.pipeline import AgentNode, PipelineGraph

_CODE_CONTRACT = """
Do not execute the code yourself. Read the data from the literal path 'DATA_FILE_PATH'
and print a single JSON object to stdout.

Respond with a JSON object:
{
  "pythonCode": "<executable Python source>",
  "description": "<what the code does and why>"
}"""

_CONTEXT_CONTRACT = """
Respond with a JSON object that includes:
{
  "contextPacket": {"dataRef": "<path of the data file you received>", "notes": "..."},
  ...
}"""


DETERMINISTIC_PIPELINE = PipelineGraph(
    id="deterministic",
    name="Standard Data Analysis",
    version="1.0.0",
    description="Deterministic pipeline for structured data analysis with linear regression",
    nodes=[
        AgentNode(
            id="ingest",
            name="Data Ingestor",
            description="Generate Python code to analyze CSV data structure",
            system_prompt=(
                "You are a data ingestion specialist. Write Python (pandas) code that reads the "
                "CSV file, reports columns, dtypes and row count, lists quality issues such as "
                "missing values and duplicates, and includes the first five rows as a string."
                + _CODE_CONTRACT
            ),
            temperature=0.1,
            downstream=["summarizer", "cleaning"],
        ),
        AgentNode(
            id="summarizer",
            name="Data Summary Agent",
            description="Provide interpretable textual summary of the dataset",
            system_prompt=(
                "You are a data communicator. Given the ingestion results, describe the dataset "
                "in plain language: what each column appears to measure, how complete the data "
                "is and what analyses it could support. Respond with a JSON object with keys "
                '"summary", "keyColumns" and "caveats".'
            ),
            temperature=0.3,
        ),
        AgentNode(
            id="cleaning",
            name="Data Cleaning Agent",
            description="Generate Python code to clean and prepare data",
            system_prompt=(
                "You are a data cleaning specialist. Based on the ingestion results, write "
                "Python code that handles missing values, removes duplicates and fixes types, "
                "then reports the actions taken and the cleaned row count."
                + _CODE_CONTRACT
                + _CONTEXT_CONTRACT
            ),
            temperature=0.2,
            downstream=["analytics"],
        ),
        AgentNode(
            id="analytics",
            name="Analytics Agent",
            description="Generate Python analysis code based on user prompt and data context",
            system_prompt=(
                "You are a data analytics expert. Using the cleaning context and the user's "
                "goal, write Python code that answers the question with descriptive statistics "
                "and, where it fits, a linear regression (coefficients, R-squared, p-values)."
                + _CODE_CONTRACT
            ),
            temperature=0.4,
            downstream=["visualization"],
        ),
        AgentNode(
            id="visualization",
            name="Visualization Agent",
            description="Creates visualization specifications based on analytics results",
            system_prompt=(
                "You are a data visualization expert. From the analytics results, choose "
                "suitable chart types and return Vega-Lite specifications. Respond with a JSON "
                'object with keys "visualizations" (list of {title, spec, interpretation}) '
                'and "recommendations".'
            ),
            temperature=0.5,
        ),
    ],
)


CREATIVE_PIPELINE = PipelineGraph(
    id="creative",
    name="Creative Insights Analysis",
    version="1.0.0",
    description="Non-deterministic pipeline exploring alternative interpretations and hypotheses",
    nodes=[
        AgentNode(
            id="ingest",
            name="Ingest Agent",
            description="Generate Python code for creative data exploration",
            system_prompt=(
                "You are an exploratory data scientist. Write Python (pandas) code that profiles "
                "the CSV file broadly: distributions, unusual values, candidate relationships "
                "between columns and anything surprising." + _CODE_CONTRACT
            ),
            temperature=0.8,
            downstream=["hypothesis-generator", "pattern-finder"],
        ),
        AgentNode(
            id="hypothesis-generator",
            name="Hypothesis Generator",
            description="Generates multiple hypotheses about the data relationships",
            system_prompt=(
                "You are a research scientist. From the exploration results, propose several "
                "competing hypotheses about relationships in the data. Respond with a JSON "
                'object with key "hypotheses" (list of {statement, rationale, testMethod, '
                "plausibility})."
            ),
            temperature=0.9,
        ),
        AgentNode(
            id="pattern-finder",
            name="Pattern Discovery Agent",
            description="Discovers unexpected patterns and anomalies",
            system_prompt=(
                "You are a pattern recognition specialist. Look for non-obvious patterns, "
                "clusters and anomalies in the exploration results and say why each might "
                'matter. Respond with a JSON object with keys "patterns" and "anomalies".'
                + _CONTEXT_CONTRACT
            ),
            temperature=0.85,
            downstream=["creative-analytics"],
        ),
        AgentNode(
            id="creative-analytics",
            name="Creative Analytics Agent",
            description="Performs exploratory analysis with multiple approaches",
            system_prompt=(
                "You are an unconventional analyst. Using the discovered patterns and the "
                "user's goal, write Python code that tries more than one analytical approach "
                "and reports how their conclusions differ." + _CODE_CONTRACT
            ),
            temperature=0.8,
            downstream=["creative-viz"],
        ),
        AgentNode(
            id="creative-viz",
            name="Creative Visualization Agent",
            description="Creates multiple interpretive visualizations",
            system_prompt=(
                "You are a data storyteller. Propose several alternative visualizations of the "
                "analysis, each telling a different story, as Vega-Lite specifications. Respond "
                'with a JSON object with key "visualizations" (list of {title, spec, narrative}).'
            ),
            temperature=0.9,
        ),
    ],
)


BUILTIN_PIPELINES: list[PipelineGraph] = [DETERMINISTIC_PIPELINE, CREATIVE_PIPELINE]
