import click
from flask import current_app
from flask.cli import with_appcontext

from .utils.error_handling import WizardNotFound


def echo_header(title):
    """
    Print a formatted header with title and underline.

    Args:
        title: Title text to display
    """
    click.echo(click.style(title, fg="green"))
    click.echo(click.style("-" * len(title), fg="green"))


def get_intake():
    intake = current_app.extensions.get("intake_wizard")
    if intake is None:
        raise click.ClickException("IntakeWizard is not initialized for this application")
    return intake


def get_definition(intake, key):
    try:
        return intake.get_definition(key)
    except WizardNotFound as e:
        raise click.BadParameter(str(e), param_hint="WIZARD") from None


@click.group()
def intake():
    """Intake wizard commands."""
    pass


@intake.command("list")
@with_appcontext
def list_wizards():
    """List the registered wizards."""
    echo_header("Intake Wizards")
    for definition in get_intake().wizards.values():
        click.echo(
            f"{definition.key}: {definition.title} "
            f"({len(definition.steps)} steps, {len(definition.schema)} fields, "
            f"draft key {definition.draft_key})"
        )


@intake.command("describe")
@click.argument("wizard")
@with_appcontext
def describe(wizard):
    """
    Show the steps and fields of a wizard.

    Args:
        wizard: Wizard key, e.g. patient
    """
    definition = get_definition(get_intake(), wizard)
    echo_header(f"{definition.title} ({definition.key})")
    for step in definition.steps:
        condition = ""
        if step.include_when:
            condition = f" [only when {step.include_when}]"
        elif step.include_if is not None:
            condition = " [conditional]"
        click.echo(click.style(f"{step.ordinal}. {step.title}{condition}", bold=True))
        for name in step.fields:
            spec = definition.schema[name]
            required = "required" if spec.required else (
                f"required when {spec.required_when}" if spec.required_when else "optional"
            )
            click.echo(f"    {name} ({spec.kind.value}, {required})")
    for refinement in definition.schema.refinements:
        click.echo(f"Rule {refinement.name}: {refinement.message} -> {refinement.attach_to}")


@intake.command("check")
@with_appcontext
def check():
    """Report orphaned fields and misattached rules for every wizard."""
    echo_header("Checking wizard definitions")
    warnings = 0
    for definition in get_intake().wizards.values():
        for warning in definition.check():
            warnings += 1
            click.echo(click.style(f"{definition.key}: {warning}", fg="yellow"))
    if warnings:
        click.echo(click.style(f"{warnings} warnings found", fg="yellow"))
    else:
        click.echo(click.style("All wizard definitions are consistent", fg="green"))


@intake.command("init-db")
@with_appcontext
def init_db():
    """Create the wizard_drafts table."""
    intake_wizard = get_intake()
    if intake_wizard.db is None:
        raise click.ClickException("The database draft backend is not configured")
    intake_wizard.db.create_all()
    click.echo(click.style("Draft table created", fg="green"))


@intake.command("clear-draft")
@click.argument("wizard")
@with_appcontext
def clear_draft(wizard):
    """
    Delete the saved draft of a wizard.

    Args:
        wizard: Wizard key, e.g. trip
    """
    intake_wizard = get_intake()
    definition = get_definition(intake_wizard, wizard)
    if intake_wizard.config.persistence.storage_backend == "session":
        raise click.ClickException("Session drafts live in browser sessions and cannot be cleared here")
    if intake_wizard.draft_store.clear(definition.draft_key):
        click.echo(click.style(f"Draft {definition.draft_key} cleared", fg="green"))
    else:
        click.echo(click.style(f"Failed to clear draft {definition.draft_key}", fg="red"))
