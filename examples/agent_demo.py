"""
Simulation of an AI Agent using execguard.

The agent (simulated here) generates commands dynamically. execguard sits
between the agent and the OS: allowed commands run under a timeout, everything
else is rejected with a reason the agent can read.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path

from execguard import SandboxConfig, create_command_tool
from execguard.formatting import render_for_agent


@dataclass
class AgentAction:
    thought: str
    command: str


class MockLLM:
    """Simulates an LLM acting on a user request."""

    def __init__(self):
        self.step = 0

    def next_action(self) -> AgentAction | None:
        """Returns the next command the 'AI' wants to run."""
        actions = [
            # Innocent exploration
            AgentAction(
                thought="I need to see what files are here.",
                command="ls -l"
            ),
            # Read-only version control (safe)
            AgentAction(
                thought="Let me check the repository state.",
                command="git status"
            ),
            # Chained privilege escalation (blocked before splitting)
            AgentAction(
                thought="I'll clean up while I'm at it.",
                command="ls; sudo rm -rf /tmp/cache"
            ),
            # Mutating git subcommand (blocked)
            AgentAction(
                thought="I should publish my changes.",
                command="git push origin main"
            ),
            # Redirection into a dotfile (blocked in strict mode)
            AgentAction(
                thought="I should update the shell config.",
                command="echo 'alias ll=ls' >> ~/.bashrc"
            ),
            # Runaway command (killed by the timeout)
            AgentAction(
                thought="Let me wait for the build.",
                command="sleep 30"
            ),
        ]

        if self.step < len(actions):
            action = actions[self.step]
            self.step += 1
            return action
        return None


async def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("🤖 Agent initializing...")
    workspace = Path("./workspace")
    workspace.mkdir(parents=True, exist_ok=True)

    async with create_command_tool(config=SandboxConfig.strict(default_timeout=2)) as tool:
        print(f"🔒 execguard active ({tool.config.mode.value} mode)\n")
        llm = MockLLM()

        while True:
            action = llm.next_action()
            if not action:
                print("✅ Agent finished task.")
                break

            print(f"🤖 Thought: {action.thought}")
            print(f"  [Tool] {tool.display_summary({'command': action.command})}")

            result = await tool.execute({"command": action.command, "workingDirectory": str(workspace)})
            output = render_for_agent(result)

            if result.success:
                print(f"  -> Result: {output.strip().splitlines()[-1]}")
            else:
                print(f"🛡️ {result.status.value.upper()}: {output.strip().splitlines()[0]}")
            print("-" * 50)

        print(f"\n📜 {len(tool.history())} commands in the audit log:")
        for record in tool.history():
            print(f"  {record.timestamp:%H:%M:%S} {record.status.value:<10} {record.command}")


if __name__ == "__main__":
    asyncio.run(main())
