"""CLI interface using typer + rich."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from ats_scanner.api import validate_texts
from ats_scanner.config import load_config
from ats_scanner.errors import InputValidationError
from ats_scanner.models.cover_letter import CoverLetter, CoverLetterTemplate
from ats_scanner.models.enums import SectionStatus
from ats_scanner.models.job_analysis import JobAnalysis
from ats_scanner.models.optimization import OptimizationResult, OptimizationType
from ats_scanner.models.scan import ScanResult
from ats_scanner.parsers.jd_parser import load_jd_file
from ats_scanner.parsers.resume_parser import load_text_file
from ats_scanner.pipeline.context import ScanContext
from ats_scanner.pipeline.cover_letter import CoverLetterGenerator
from ats_scanner.pipeline.job_analyzer import JobAnalyzer
from ats_scanner.pipeline.optimizer import ResumeOptimizer
from ats_scanner.pipeline.orchestrator import Orchestrator

app = typer.Typer(
    name="ats-scanner",
    help="Score a resume against a job description the way an ATS would",
    no_args_is_help=True,
)
console = Console()

STATUS_COLORS = {
    SectionStatus.EXCELLENT: "green",
    SectionStatus.GOOD: "cyan",
    SectionStatus.NEEDS_IMPROVEMENT: "yellow",
    SectionStatus.CRITICAL: "red",
}


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _read(path: Path, loader, what: str) -> str:
    if not path.exists():
        console.print(f"[red]{what} file not found: {path}[/red]")
        raise typer.Exit(1)
    try:
        return loader(path)
    except ValueError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _check(**texts: str) -> None:
    try:
        validate_texts(**texts)
    except InputValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)


def _score_color(score: int) -> str:
    return "green" if score >= 70 else "yellow" if score >= 50 else "red"


def _show_scan(result: ScanResult) -> None:
    scores = result.scores
    color = _score_color(scores.overall_score)
    console.print(
        Panel(
            f"[bold {color}]Overall: {scores.overall_score}/100[/bold {color}]"
            f"  |  Format: {scores.format_score}/100"
            f"  |  Keyword match: {result.keyword_matches.match_score}/100\n"
            f"{result.explanation.score_explanation.what_it_means}",
            title=f"{result.job.title or 'Job'} {('@ ' + result.job.company) if result.job.company else ''}".strip(),
        )
    )

    table = Table(title="Score breakdown")
    table.add_column("Section")
    table.add_column("Score", justify="right")
    table.add_column("Status")
    for entry in result.explanation.detailed_breakdown:
        status_color = STATUS_COLORS[entry.status]
        table.add_row(entry.section, str(entry.score), f"[{status_color}]{entry.status.value}[/{status_color}]")
    console.print(table)

    if result.keyword_matches.missing_keywords:
        console.print("\n[yellow]Missing keywords:[/yellow] " + ", ".join(result.keyword_matches.missing_keywords))
    if result.skill_gaps.critical_skills:
        console.print("[red]Critical skill gaps:[/red] " + ", ".join(result.skill_gaps.critical_skills))

    rewrites = result.rewrite_suggestions
    if rewrites.priority_rewrites or rewrites.quick_wins:
        console.print("\n[bold]Top rewrites:[/bold]")
        for s in rewrites.priority_rewrites + rewrites.quick_wins:
            console.print(f"  [green]+{s.improvement}[/green] [{s.section.value}] {s.rewritten_text}")

    steps = result.explanation.next_steps
    if steps.immediate:
        console.print("\n[bold]Next steps:[/bold]")
        for step in steps.immediate:
            console.print(f"  - {step}")

    if result.degraded_stages:
        console.print(f"\n[dim]Fallbacks used in: {', '.join(result.degraded_stages)}[/dim]")
    meta = result.metadata
    console.print(
        f"[dim]{meta.get('llm_calls', 0)} LLM calls, ${meta.get('estimated_cost_usd', 0):.4f}, "
        f"{meta.get('elapsed_seconds', 0):.1f}s[/dim]"
    )


def _show_optimization(result: OptimizationResult, output: Path | None) -> None:
    color = "green" if result.improvement > 0 else "yellow"
    console.print(
        Panel(
            f"{result.original_score} -> [bold {color}]{result.optimized_score}[/bold {color}] "
            f"({result.improvement:+d})\n"
            + "  ".join(f"{name}: {delta:+d}" for name, delta in result.score_changes.items())
            + f"\nApplied suggestions: {len(result.applied_suggestions)}",
            title=f"Optimization ({result.optimization_type.value})",
        )
    )
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(result.optimized_text, encoding="utf-8")
        console.print(f"[green]Optimized resume saved: {output}[/green]")
    else:
        console.print(result.optimized_text)


def _show_job_analysis(analysis: JobAnalysis) -> None:
    insights = analysis.insights
    salary = analysis.salary
    pay = (
        f"{salary.currency} {salary.min or '?'} - {salary.max or '?'}"
        if salary and (salary.min or salary.max)
        else "not specified"
    )
    console.print(
        Panel(
            f"Level: {analysis.experience.level}"
            + (f" ({analysis.experience.min_years}+ years)" if analysis.experience.min_years else "")
            + f"\nSalary: {pay}"
            + f"\nCompetitiveness: {insights.competitiveness.level} ({insights.competitiveness.score})"
            + f"\nCareer growth: {insights.career_growth}  |  Remote: {'yes' if insights.remote_work else 'no'}"
            + f"\nStrategy: {insights.application_strategy}",
            title=f"{analysis.title or 'Job'} {('@ ' + analysis.company) if analysis.company else ''}".strip(),
        )
    )
    console.print("[bold]Required skills:[/bold] " + (", ".join(s.name for s in analysis.skills.required) or "-"))
    console.print("[bold]Preferred skills:[/bold] " + (", ".join(s.name for s in analysis.skills.preferred) or "-"))
    culture = analysis.culture
    signals = [
        f"{label}: {value}"
        for label, value in (
            ("Environment", culture.work_environment),
            ("Team", culture.team_size),
            ("Growth", culture.growth),
            ("Work-life", culture.work_life_balance),
        )
        if value
    ]
    if signals or culture.keywords:
        console.print("[bold]Culture:[/bold] " + "  |  ".join(signals + culture.keywords))
    for item in insights.differentiators:
        console.print(f"  - {item}")


def _show_cover_letter(letter: CoverLetter, output: Path | None) -> None:
    title = f"{letter.job_title or 'Cover letter'} {('@ ' + letter.company) if letter.company else ''}".strip()
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(letter.content, encoding="utf-8")
        console.print(f"[green]Cover letter saved: {output}[/green]")
    else:
        console.print(Panel(letter.content, title=f"{title} ({letter.template.value})"))


def _fail(error: str | None) -> None:
    console.print(f"[red]Failed: {error}[/red]")
    raise typer.Exit(1)


@app.command()
def scan(
    resume: Path = typer.Argument(help="Resume file (.txt or .md)"),
    job: Path = typer.Argument(help="Job description file (.txt or .md)"),
    as_json: bool = typer.Option(False, "--json", help="Print the full scan result as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run the full ATS scan."""
    _setup_logging(verbose)
    resume_text = _read(resume, load_text_file, "Resume")
    job_text = _read(job, load_jd_file, "Job description")
    _check(resume_text=resume_text, job_text=job_text)

    async def _run():
        async with ScanContext.create(load_config()) as ctx:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
                transient=True,
            ) as progress:
                task = progress.add_task("Scanning...", total=None)

                def on_phase(phase: str, detail: str) -> None:
                    progress.update(task, description=detail or phase)

                return await Orchestrator(ctx).scan(
                    resume_text, job_text, file_name=resume.name, on_phase=on_phase
                )

    result = asyncio.run(_run())
    if not result.ok:
        _fail(result.error)
    if as_json:
        console.print_json(json.dumps(result.value.to_api()))
    else:
        _show_scan(result.value)


@app.command()
def optimize(
    resume: Path = typer.Argument(help="Resume file (.txt or .md)"),
    job: Path = typer.Argument(help="Job description file (.txt or .md)"),
    optimization_type: OptimizationType = typer.Option(
        OptimizationType.FULL, "--type", "-t", help="Which sections to optimize"
    ),
    output: Path = typer.Option(None, "--output", "-o", help="Where to save the optimized resume"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Apply rewrite suggestions to the resume and re-score it."""
    _setup_logging(verbose)
    resume_text = _read(resume, load_text_file, "Resume")
    job_text = _read(job, load_jd_file, "Job description")
    _check(resume_text=resume_text, job_text=job_text)

    async def _run():
        async with ScanContext.create(load_config()) as ctx:
            with console.status("Optimizing..."):
                return await ResumeOptimizer(Orchestrator(ctx)).optimize(resume_text, job_text, optimization_type)

    result = asyncio.run(_run())
    if not result.ok:
        _fail(result.error)
    _show_optimization(result.value, output)


@app.command("analyze-job")
def analyze_job(
    job: Path = typer.Argument(help="Job description file (.txt or .md)"),
    as_json: bool = typer.Option(False, "--json", help="Print the analysis as JSON"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Analyze a job posting on its own."""
    _setup_logging(verbose)
    job_text = _read(job, load_jd_file, "Job description")
    _check(job_text=job_text)

    async def _run():
        async with ScanContext.create(load_config()) as ctx:
            with console.status("Analyzing job description..."):
                return await JobAnalyzer(Orchestrator(ctx)).analyze(job_text)

    result = asyncio.run(_run())
    if not result.ok:
        _fail(result.error)
    if as_json:
        console.print_json(json.dumps(result.value.to_api()))
    else:
        _show_job_analysis(result.value)


@app.command("cover-letter")
def cover_letter(
    resume: Path = typer.Argument(help="Resume file (.txt or .md)"),
    job: Path = typer.Argument(help="Job description file (.txt or .md)"),
    template: CoverLetterTemplate = typer.Option(
        CoverLetterTemplate.PROFESSIONAL, "--template", "-t", help="Letter style"
    ),
    hiring_manager: str = typer.Option(None, "--to", help="Hiring manager's name"),
    output: Path = typer.Option(None, "--output", "-o", help="Where to save the letter"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Write a cover letter for the resume and job."""
    _setup_logging(verbose)
    resume_text = _read(resume, load_text_file, "Resume")
    job_text = _read(job, load_jd_file, "Job description")
    _check(resume_text=resume_text, job_text=job_text)

    async def _run():
        async with ScanContext.create(load_config()) as ctx:
            with console.status("Writing cover letter..."):
                return await CoverLetterGenerator(Orchestrator(ctx)).generate(
                    resume_text, job_text, template, hiring_manager=hiring_manager
                )

    result = asyncio.run(_run())
    if not result.ok:
        _fail(result.error)
    if result.degraded:
        console.print("[dim]Fallbacks were used while writing this letter.[/dim]")
    _show_cover_letter(result.value, output)

if __name__ == "__main__":
    app()
