"""
Plan generation for Modflow.

- **prompt_builder.py**: Builds the system prompt from the action catalog and
  wraps prompts with JSON-only instructions.
- **response_generator.py**: Calls the OpenAI-compatible backend with retries
  and exponential backoff, then repairs the returned text.
- **json_repair.py**: Heuristics that turn almost-JSON into JSON.
- **fallback_planner.py**: Rule-based planner used when generation fails.
- **plan_parser.py**: Validates the JSON document against the plan schema and
  builds a :class:`Plan`.
"""
