"""
Modflow - Natural-Language Moderation Workflows for Discord

Modflow turns a moderator's plain-language request into a validated plan of
Discord actions, asks for confirmation before destructive ones, and executes
the plan step by step.

Core Components:

- **AI Layer**: Prompts an OpenAI-compatible backend for a JSON plan, repairs
  malformed output, and falls back to a rule-based planner when the backend
  is unavailable
- **Action Resolution**: Maps whatever action names the model produced onto
  the canonical action catalog (exact, alias, fuzzy, composite)
- **Workflow Runner**: Executes plans sequentially or in parallel, stops at
  failing critical steps, and keeps a bounded history of runs
- **Approval Gate**: Holds destructive plans until the requester confirms
  them or the confirmation window expires
- **Event Bus**: Priority-ordered, scope-aware pub/sub used to surface
  corrections, notices, and approval prompts

Usage:
    from modflow.main import main
    main()  # Starts the bot
"""
