"""Prompt templates for player agents."""

from typing import TYPE_CHECKING, List, Optional

from ...core.enums import Role

if TYPE_CHECKING:
    from ...core.game_state import GameState, Player


JSON_FORMAT_INSTRUCTION = """
You MUST respond with a valid JSON object in this exact format:
{
  "thought": "Your internal reasoning (not visible to other players)",
  "message": "Your public statement (at most 5 sentences, only for discussion/defense, empty string otherwise)",
  "action": "A player ID, SKIP, GUILTY or INNOCENT depending on the question"
}

Respond ONLY with the JSON object. No other text before or after."""


_ROLE_GUIDANCE = {
    Role.MAFIA: """Your team wins when the Mafia equals or outnumbers the Town.
- Agree with the other Mafia at night on one Town member to kill
- Blend in during the day and deflect suspicion
- Never reveal that you are Mafia
You know who the other Mafia members are.""",
    Role.SHERIFF: """Your team wins when every Mafia member is eliminated.
- Investigate one player each night to learn if they are Mafia or Town
- Use your results wisely; revealing yourself early makes you a target""",
    Role.DOCTOR: """Your team wins when every Mafia member is eliminated.
- Protect one player each night; if the Mafia targets them, they survive
- You may protect yourself""",
    Role.VILLAGER: """Your team wins when every Mafia member is eliminated.
- Take part in discussions and watch how others behave
- Vote on evidence""",
}


def _history(state: "GameState") -> str:
    return state.public_log_text or "Nothing has happened yet."


def _memory_block(player: "Player", title: str) -> str:
    if not player.context_memory:
        return ""
    return f"\n{title}:\n{player.memory_text}\n"


class PlayerPrompts:
    """Prompt templates for player agents."""

    @staticmethod
    def system_prompt(player: "Player") -> str:
        """Generate system prompt for player agent."""
        return f"""You are playing the social deduction game 'Mafia'. Your player ID is: {player.id}

YOUR ROLE: {player.role.display_name}
{player.role.description}

{_ROLE_GUIDANCE[player.role]}
{JSON_FORMAT_INSTRUCTION}"""

    @staticmethod
    def night_action(player: "Player", state: "GameState", extra_info: Optional[str] = None) -> str:
        """Night prompt. extra_info is the Mafia transcript or the Sheriff's past results."""
        alive = "\n".join(
            f"- {p.id}{' (YOU)' if p.id == player.id else ''}" for p in state.alive_players
        )
        prompt = f"=== NIGHT {state.day} ===\n"
        prompt += _memory_block(player, "Your memory of previous events")
        prompt += f"\nALIVE PLAYERS:\n{alive}\n\n"

        if not player.role.has_night_action:
            return prompt + "You have no night action. Set your action to 'SKIP'."

        if player.role is Role.MAFIA:
            allies = [m.id for m in state.alive_mafia if m.id != player.id]
            if allies:
                prompt += "Your fellow Mafia members:\n" + "\n".join(f"- {a}" for a in allies) + "\n\n"
            if extra_info:
                prompt += f"MAFIA DISCUSSION:\n{extra_info}\n\n"
            prompt += (
                "Choose a Town member to kill tonight. Your action must be the Player ID "
                "of your target. Work toward a consensus with the other Mafia."
            )
        elif player.role is Role.SHERIFF:
            if extra_info:
                prompt += f"Your previous investigation results:\n{extra_info}\n\n"
            prompt += (
                "Choose a player to investigate tonight. Your action must be their Player ID. "
                "You will learn whether they are MAFIA or TOWN."
            )
        elif player.role is Role.DOCTOR:
            prompt += (
                "Choose a player to protect tonight. Your action must be their Player ID. "
                "If the Mafia targets them, they survive."
            )
        return prompt

    @staticmethod
    def discussion(player: "Player", state: "GameState", round_statements: List[str]) -> str:
        """Generate prompt for one turn of day discussion."""
        so_far = "\n".join(round_statements) if round_statements else "Nobody has spoken yet."
        alive = ", ".join(p.id for p in state.alive_players)
        return f"""=== DAY {state.day} - DISCUSSION ===

GAME HISTORY:
{_history(state)}

Discussion so far:
{so_far}

ALIVE PLAYERS: {alive}
{_memory_block(player, "Your private notes")}
It's your turn to speak. Share suspicions, information or a defense.
Your 'message' is visible to everyone. Your 'action' should be 'SKIP'."""

    @staticmethod
    def nomination(player: "Player", state: "GameState") -> str:
        """Generate prompt for the nomination vote."""
        options = "\n".join(f"- {p.id}" for p in state.alive_players if p.id != player.id)
        return f"""=== DAY {state.day} - NOMINATION ===

GAME HISTORY:
{_history(state)}

You can nominate one of these players for trial:
{options}

Your 'action' should be the Player ID you nominate, or 'SKIP' to abstain."""

    @staticmethod
    def defense(accused: "Player", state: "GameState") -> str:
        """Generate prompt for the accused's defense speech."""
        return f"""=== DAY {state.day} - DEFENSE ===

You have been nominated for elimination!

GAME HISTORY:
{_history(state)}

Convince the Town of your innocence. Your 'message' is your defense speech,
visible to everyone. Your 'action' should be 'SKIP'."""

    @staticmethod
    def judgment(voter: "Player", accused: "Player", defense_speech: str, state: "GameState") -> str:
        """Generate prompt for the final GUILTY/INNOCENT vote."""
        return f"""=== DAY {state.day} - FINAL JUDGMENT ===

The accused: {accused.id}

Their defense:
"{defense_speech}"
{_memory_block(voter, "Your private knowledge")}
Cast your vote:
- GUILTY: they are Mafia and should be eliminated
- INNOCENT: they are Town and should be spared

Your 'action' must be either 'GUILTY' or 'INNOCENT'."""

    @staticmethod
    def error_correction(original_prompt: str, error: str) -> str:
        """Re-ask after a malformed reply."""
        return (
            f"{original_prompt}\n\nERROR: Your previous response was invalid.\n"
            f"Reason: {error}\n\nPlease provide a valid JSON response."
        )
