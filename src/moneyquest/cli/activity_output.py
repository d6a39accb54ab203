"""CLI rendering of progress changes."""

import click

from moneyquest.domain.entities import ActivityResult
from moneyquest.domain.gamification import get_level_title


def echo_activity(result: ActivityResult) -> None:
    """Print XP, level, streak and newly completed quests and badges."""
    click.echo(f"  +{result.xp_earned} XP (total {result.total_xp}, streak {result.streak})")
    if result.leveled_up:
        click.echo(f"  Level up! You are now level {result.level}: {get_level_title(result.level)}")
    for title in result.completed_quests:
        click.echo(f"  Quest completed: {title}")
    for name in result.unlocked_badges:
        click.echo(f"  Badge unlocked: {name}")
