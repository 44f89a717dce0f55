"""DOM extraction scripts evaluated inside rendered Coursera pages.

Each script is an arrow function taking a single argument object, so selectors
stay on the Python side and are passed in by the caller.
"""

# Default selector awaited before extracting the main content of a page.
CONTENT_READY_SELECTOR = '.rc-CML, .rc-SupplementContent, [data-testid="content"], main'

CHROME_SELECTORS = (
    "header",
    "footer",
    "nav",
    '[data-testid="navbar"]',
    ".rc-CourseHeader",
    ".rc-LeftNav",
    ".rc-SidebarLayout__sidebar",
)

CONTENT_SELECTORS = (
    ".rc-CML",
    ".rc-SupplementContent",
    ".rc-ReadingItem",
    '[data-testid="content"]',
    ".rc-LectureContent",
    ".rc-QuizContent",
    "main",
    "article",
    ".rc-ItemPage",
)

MIN_CONTENT_LENGTH = 50

EXTRACT_MAIN_CONTENT = """
({ chrome, candidates, minLength }) => {
  for (const sel of chrome) {
    document.querySelectorAll(sel).forEach((el) => el.remove());
  }
  for (const sel of candidates) {
    const el = document.querySelector(sel);
    const text = el ? el.textContent.trim() : "";
    if (text.length > minLength) {
      return { html: el.innerHTML, text, selector: sel };
    }
  }
  return { html: document.body.innerHTML, text: document.body.textContent.trim(), selector: "body" };
}
"""

MODULE_CONTAINER_SELECTOR = '[data-testid="week-container"], .rc-WeekItemName, .rc-ModuleName, .rc-LessonItem'
MODULE_TITLE_SELECTOR = ".rc-WeekItemName, .rc-ModuleName, h2, h3"
MODULE_ITEM_SELECTOR = 'a[href*="/learn/"], .rc-ItemName'

# Returns [{name, items: [{name, href}]}]; item types are classified in Python.
EXTRACT_MODULES = """
({ containerSelector, titleSelector, itemSelector }) => {
  const text = (el) => (el && el.textContent ? el.textContent.trim() : null);
  return Array.from(document.querySelectorAll(containerSelector)).map((container, idx) => {
    const items = Array.from(container.querySelectorAll(itemSelector)).map((item) => {
      const link = item.closest("a") || item.querySelector("a");
      return { name: text(item), href: link ? link.href : null };
    });
    return { name: text(container.querySelector(titleSelector)) || `Module ${idx + 1}`, items };
  });
}
"""

# Returns [{name, href}] for every anchor matching the selector.
EXTRACT_LINKS = """
(selector) => Array.from(document.querySelectorAll(selector)).map((link) => ({
  name: link.textContent ? link.textContent.trim() : null,
  href: link.href,
}))
"""

COURSE_ITEM_LINK_SELECTOR = 'a[href*="/learn/"]'
ASSIGNMENT_LINK_SELECTOR = 'a[href*="/quiz/"], a[href*="/exam/"], a[href*="/assignment/"], a[href*="/peer/"]'

EXTRACT_LECTURE = """
() => {
  const text = (sel) => {
    const el = document.querySelector(sel);
    return el && el.textContent ? el.textContent.trim() : null;
  };
  return {
    title: text(".rc-VideoName, h1, .video-name"),
    transcript: text('.rc-Transcript, [data-testid="transcript"]'),
    description: text(".rc-VideoDescription, .video-description"),
    duration: text('.video-duration, [data-testid="duration"]'),
  };
}
"""

EXTRACT_PROGRESS = """
() => {
  const bar = document.querySelector('.rc-ProgressBar, [data-testid="progress"]');
  const label = document.querySelector(".rc-ProgressText, .progress-percentage");
  return {
    percentage: label && label.textContent ? label.textContent.trim() : null,
    completed_items: document.querySelectorAll('[data-testid="completed"], .completed-item').length,
    total_items: document.querySelectorAll('.rc-ItemCard, [data-testid="item"]').length,
    progress_bar_width: bar && bar.style.width ? bar.style.width : null,
  };
}
"""

DEADLINE_ROW_SELECTOR = '[data-testid="assignment-row"], .rc-AssignmentsTableRow, tr'
DEADLINE_DUE_SELECTOR = '[data-testid="due-date"], .rc-DueDate, .due-date'

# Returns [{name, href, due}] for rows containing a due date.
EXTRACT_DEADLINES = """
({ rowSelector, dueSelector }) => {
  const rows = [];
  document.querySelectorAll(rowSelector).forEach((row) => {
    const due = row.querySelector(dueSelector);
    if (!due) return;
    const link = row.querySelector('a[href*="/learn/"]');
    rows.push({
      name: link && link.textContent ? link.textContent.trim() : null,
      href: link ? link.href : null,
      due: due.textContent ? due.textContent.trim() : null,
    });
  });
  return rows;
}
"""
