"""
Discord integration.

- **discord_executor.py**: Executes canonical actions against a guild.
- **approval_ui.py**: Approve / Reject buttons and the plan embed.
- **notifier.py**: Posts corrections, notices, and approval prompts.
- **cogs/**: Message listener that feeds the pipeline.
"""
