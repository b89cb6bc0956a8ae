"""Rule-based analysis of a coding profile.

Everything here is a pure function of the UserCodingProfile: no I/O, no
clock. The report is the default analysis when no language model is
available and the per-field fallback when AI text can't be parsed.

Checklists are evaluated in a fixed order so the joined prose is stable.
"""

from __future__ import annotations

from codeinsight.analysis.models import HeuristicReport, Suggestions, TIMELINE, UserCodingProfile

MIN_RATING = 1.0
MAX_RATING = 5.0


def analyze(profile: UserCodingProfile) -> HeuristicReport:
    """Build the full heuristic report for a profile."""
    return HeuristicReport(
        approach_rating=approach_rating(profile),
        quality_score=quality_score(profile),
        problem_solving_style=problem_solving_style(profile),
        strengths=strengths(profile),
        weaknesses=weaknesses(profile),
        suggestions=suggestions(profile),
    )


def _clamp(value: float) -> float:
    return round(min(MAX_RATING, max(MIN_RATING, value)), 2)


def approach_rating(profile: UserCodingProfile) -> float:
    rating = 3.0
    if profile.total_runs > 10:
        rating += 0.5
    if profile.total_submits > 5:
        rating += 0.3
    if profile.total_problems > 5:
        rating += 0.4
    if len(profile.languages_used) > 1:
        rating += 0.2
    if len(profile.problem_categories) > 3:
        rating += 0.2
    return _clamp(rating)


def quality_score(profile: UserCodingProfile) -> float:
    score = 3.5
    if profile.total_submits > 0:
        ratio = profile.run_to_submit_ratio
        if ratio <= 2:
            score += 1.0
        elif ratio <= 3:
            score += 0.5
        elif ratio > 6:
            score -= 0.3
    if profile.total_problems > 0 and profile.total_submits > 0:
        if profile.submit_ratio > 0.7:
            score += 0.3
    return _clamp(score)


def problem_solving_style(profile: UserCodingProfile) -> str:
    parts: list[str] = []
    if profile.total_runs > profile.total_submits * 2:
        parts.append("Iterative problem solver who thoroughly tests code before submission.")
    else:
        parts.append("Confident problem solver with a focused and efficient approach.")

    if len(profile.languages_used) > 1:
        parts.append("Demonstrates versatility by using multiple programming languages.")
    if len(profile.problem_categories) > 2:
        parts.append("Shows breadth in problem-solving by tackling diverse categories.")

    return " ".join(parts)


def strengths(profile: UserCodingProfile) -> str:
    found = ["Active coding practice"]
    if profile.total_runs > 5:
        found.append("Regular practice habits")
    if len(profile.languages_used) > 1:
        found.append("Language versatility")
    if len(profile.problem_categories) > 3:
        found.append("Diverse problem-solving approach")
    if profile.total_submits > profile.total_runs * 0.3:
        found.append("Good solution completion rate")
    return ", ".join(found)


def weaknesses(profile: UserCodingProfile) -> str:
    found: list[str] = []
    if profile.period_days < 14:
        found.append("Limited analysis period")
    if len(profile.problem_categories) <= 2:
        found.append("Need more diverse problem categories")
    if len(profile.languages_used) == 1:
        found.append("Could benefit from exploring multiple programming languages")
    if profile.total_runs > profile.total_submits * 5:
        found.append(
            "High run-to-submit ratio suggests room for improvement in solution confidence"
        )

    if not found:
        found.append("Areas for continued growth and learning")
    return ", ".join(found)


def suggestions(profile: UserCodingProfile) -> Suggestions:
    focus_areas: list[str] = []
    next_steps: list[str] = []
    resources: list[str] = []

    if len(profile.problem_categories) <= 2:
        focus_areas.append("Expand into new problem categories (Graphs, Dynamic Programming, Trees)")
        resources.append("LeetCode problem categories guide")

    if len(profile.languages_used) == 1:
        focus_areas.append("Learn a second programming language (Python/Java/C++)")
        resources.append("Multi-language algorithm practice")

    ratio = profile.run_to_submit_ratio
    if ratio > 4:
        focus_areas.append("Improve initial problem analysis to reduce testing iterations")
        resources.append("Problem-solving frameworks and pattern recognition")
    elif ratio < 1.5:
        focus_areas.append("Increase code testing and edge case consideration")

    if profile.total_problems < 10:
        next_steps.append("Complete 15-20 problems in the next month")
        next_steps.append("Focus on fundamental data structures (Arrays, LinkedLists, Stacks)")
    elif profile.total_problems < 50:
        next_steps.append("Progress to medium-difficulty problems")
        next_steps.append("Study time and space complexity analysis")
    else:
        next_steps.append("Tackle hard problems and optimize existing solutions")
        next_steps.append("Explore system design concepts")

    next_steps.append("Join coding competitions or daily challenges")
    next_steps.append("Review and optimize your most challenging solutions")

    return Suggestions(
        focus_areas=focus_areas,
        next_steps=next_steps,
        resources=resources,
        timeline=TIMELINE,
    )


def render_narrative(profile: UserCodingProfile) -> str:
    """Render the long-form markdown analysis shown when no AI text exists."""
    ratio = profile.run_to_submit_ratio
    submit_ratio = profile.submit_ratio
    languages = sorted(profile.languages_used)
    categories = profile.problem_categories
    lines: list[str] = ["## CODING PATTERN ANALYSIS", ""]

    lines.append("### **Problem-Solving Approach**")
    if ratio > 3:
        lines.append(
            f"You demonstrate a **thorough, iterative approach** to problem-solving. "
            f"With {profile.total_runs} code executions across {profile.total_submits} "
            f"submissions ({ratio:.1f}x ratio), you clearly prefer to test and refine your "
            f"solutions before submitting. This methodical approach shows strong debugging "
            f"skills and attention to detail."
        )
    elif ratio > 1.5:
        lines.append(
            f"You show a **balanced, confident approach** to coding. Your run-to-submit "
            f"ratio of {ratio:.1f} suggests you test your code appropriately while "
            f"maintaining efficiency. This indicates good problem-solving intuition."
        )
    else:
        lines.append(
            "You demonstrate a **direct, confident coding style**. With minimal testing "
            "iterations before submission, you likely have strong initial problem "
            "analysis skills and code confidence."
        )
    lines.append("")

    lines.append("### **Practice Consistency & Volume**")
    if profile.total_runs > 50:
        level = "**Excellent activity level!**"
    elif profile.total_runs > 20:
        level = "**Good practice consistency.**"
    elif profile.total_runs > 5:
        level = "**Moderate engagement level.**"
    else:
        level = "**Low activity detected.**"
    daily_average = profile.total_runs / profile.period_days if profile.period_days else 0.0
    lines.append(
        f"{level} Over the past {profile.period_days} days, you've executed code "
        f"{profile.total_runs} times ({daily_average:.1f} per day average) across "
        f"{profile.total_problems} unique problems."
    )
    lines.append("")

    lines.append("### **Technical Versatility**")
    if len(languages) > 2:
        lines.append(
            f"**Strong multi-language proficiency!** You've demonstrated versatility across "
            f"{len(languages)} programming languages: {', '.join(languages)}. Your primary "
            f"focus on {profile.most_used_language} while maintaining other languages shows "
            f"balanced skill development."
        )
    elif len(languages) > 1:
        lines.append(
            f"**Good language diversity.** You're working with {' and '.join(languages)}, "
            f"showing flexibility in your technical approach. Consider exploring additional "
            f"languages to broaden your problem-solving toolkit."
        )
    else:
        lines.append(
            f"**Focused specialization** in {profile.most_used_language}. While deep "
            f"expertise is valuable, exploring other languages like Python, Java, or C++ "
            f"could enhance your problem-solving perspectives."
        )
    lines.append("")

    lines.append("### **Problem Domain Coverage**")
    if len(categories) > 4:
        top = sorted(categories.items(), key=lambda kv: (-kv[1], kv[0]))[:5]
        listed = ", ".join(f"{name} ({count})" for name, count in top)
        lines.append(
            f"**Excellent problem diversity!** You're tackling {len(categories)} different "
            f"problem categories: {listed}. This breadth demonstrates strong algorithmic "
            f"thinking across multiple domains."
        )
    elif len(categories) > 2:
        lines.append(
            f"**Good problem variety.** You're working on {len(categories)} categories, "
            f"showing solid foundational coverage. Consider expanding into areas like "
            f"Dynamic Programming or Graph algorithms."
        )
    else:
        lines.append(
            "**Limited problem scope detected.** Target categories like Arrays, Strings, "
            "Trees, Graphs, and Dynamic Programming for well-rounded development."
        )
    lines.append("")

    lines.append("### **Code Quality Indicators**")
    if submit_ratio > 0.8:
        completion = (
            f"**High solution completion rate** ({submit_ratio:.0%}) indicates strong "
            f"problem-solving persistence and code quality."
        )
    elif submit_ratio > 0.5:
        completion = (
            f"**Decent completion rate** ({submit_ratio:.0%}) shows consistent effort, "
            f"with room for improvement in solution finalization."
        )
    else:
        completion = (
            "**Low submission rate** suggests opportunities to focus on completing "
            "solutions rather than just exploring approaches."
        )
    if profile.total_runs > profile.total_submits * 4:
        habit = "very thorough in testing but could benefit from more decisive solution implementation."
    else:
        habit = "balancing exploration with practical solution delivery effectively."
    lines.append(f"{completion} Your coding patterns suggest you're {habit}")
    lines.append("")

    lines.append("### **Strategic Development Path**")
    lines.append("**Immediate Priorities:**")
    if len(languages) == 1:
        lines.append("• Language Expansion: Add Python or Java to your toolkit")
    if len(categories) <= 2:
        lines.append("• Algorithm Diversity: Practice Graph traversal and Dynamic Programming problems")
    if profile.total_problems < 10:
        lines.append("• Volume Building: Target 15-20 problems per month")
    if submit_ratio < 0.5:
        lines.append("• Solution Completion: Focus on finishing and submitting more solutions")
    lines.append("")
    lines.append("**Advanced Development:**")
    lines.append("• Complexity Analysis: Study Big-O notation for optimization insights")
    lines.append("• Design Patterns: Learn common algorithmic patterns and when to apply them")
    lines.append("• Competitive Programming: Join contests for rapid skill acceleration")
    lines.append("")

    key_strengths: list[str] = []
    if profile.total_runs > 20:
        key_strengths.append("Consistent practice habits")
    if ratio > 2:
        key_strengths.append("Thorough code testing approach")
    if len(languages) > 1:
        key_strengths.append("Multi-language adaptability")
    if len(categories) > 3:
        key_strengths.append("Diverse problem-solving experience")
    if submit_ratio > 0.6:
        key_strengths.append("Strong solution completion rate")
    if not key_strengths:
        key_strengths = ["Foundational coding engagement", "Growth-oriented learning approach"]

    lines.append("### **Key Strengths Identified**")
    lines.append(f"Your analysis reveals these core strengths: {', '.join(key_strengths)}.")
    return "\n".join(lines)
