"""Profile, quest, badge and alert commands."""

import click
from moneyquest.domain.alerts import AlertService
from moneyquest.domain.gamification import get_level_title, get_xp_progress
from moneyquest.domain.progress import ProgressService


@click.command("profile")
@click.pass_context
def show_profile(ctx):
    """Show level, XP, streak and financial mood."""
    service = ProgressService(ctx.obj["db"])
    profile = service.ensure_profile(ctx.obj["user"])

    click.echo(f"{profile.display_name}")
    click.echo(f"  Level {profile.level}: {get_level_title(profile.level)}")
    click.echo(f"  XP: {profile.xp} ({get_xp_progress(profile.xp):.0f}% to next level)")
    click.echo(f"  Streak: {profile.streak} day(s)")
    click.echo(f"  Income: {profile.total_income:,.2f}  Expenses: {profile.total_expenses:,.2f}")
    click.echo(f"  Mood: {profile.financial_mood.value.replace('_', ' ')}")


@click.command("quests")
@click.pass_context
def list_quests(ctx):
    """Show active quests and their progress."""
    service = ProgressService(ctx.obj["db"])
    user_id = ctx.obj["user"]
    service.ensure_profile(user_id)

    quests = service.list_quests(user_id)
    if not quests:
        click.echo("No active quests.")
        return

    for quest in quests:
        mark = "x" if quest.is_completed else " "
        click.echo(
            f"[{mark}] {quest.title:22s} {quest.progress_current}/{quest.progress_target} "
            f"({quest.type.value}, {quest.xp_reward} XP)"
        )
        click.echo(f"      {quest.description}")


@click.command("badges")
@click.pass_context
def list_badges(ctx):
    """Show badges, unlocked first."""
    service = ProgressService(ctx.obj["db"])
    badges = sorted(service.list_badges(ctx.obj["user"]), key=lambda b: (not b.is_unlocked, b.name))
    for badge in badges:
        if badge.is_unlocked:
            click.echo(f"* {badge.name} (unlocked {badge.unlocked_at:%Y-%m-%d})")
        else:
            click.echo(f"  {badge.name} ({badge.requirement_type.value} {badge.requirement_value})")


@click.command("alerts")
@click.pass_context
def list_alerts(ctx):
    """Show financial alerts."""
    alerts = AlertService(ctx.obj["db"]).get_alerts(ctx.obj["user"])
    if not alerts:
        click.echo("No alerts. All good!")
        return
    for alert in alerts:
        click.echo(f"[{alert.kind.value.upper()}] {alert.title}: {alert.description}")


def register_commands(cli):
    """Register profile commands with main CLI."""
    cli.add_command(show_profile)
    cli.add_command(list_quests)
    cli.add_command(list_badges)
    cli.add_command(list_alerts)
