#!/usr/bin/env python3
"""
Random fuzzer for the sanitizer.
Generates malformed and hostile HTML and checks that every output is safe,
stable under re-sanitizing, and produced quickly.
"""

import argparse
import random
import re
import string
import sys
import time
import traceback

from allowhtml import SanitizeError, strict_policy, strip_tags_policy, ugc_policy

POLICIES = {
    "ugc": ugc_policy,
    "strict": strict_policy,
    "strip": strip_tags_policy,
}

TAGS = [
    "div", "span", "p", "a", "img", "table", "tr", "td", "th", "ul", "ol", "li",
    "b", "i", "em", "strong", "code", "pre", "blockquote", "q", "time", "bdo",
    "form", "input", "button", "select", "option", "textarea", "script", "style",
    "head", "body", "html", "title", "meta", "link", "base", "br", "hr", "h1",
    "iframe", "object", "embed", "video", "audio", "source", "svg", "math",
    "noscript", "noembed", "noframes", "frameset", "frame", "plaintext", "xmp",
]

ATTRIBUTES = [
    "id", "class", "style", "href", "src", "alt", "title", "name", "value", "type",
    "rel", "target", "dir", "lang", "cite", "datetime", "colspan", "sandbox",
    "onclick", "onload", "onerror", "onmouseover", "data-x", "srcdoc", "formaction",
]

URLS = [
    "javascript:alert(1)", "JaVaScRiPt:alert(1)", "java\tscript:alert(1)",
    "jav&#x09;ascript:alert(1)", "&#106;avascript:alert(1)", " javascript:alert(1)",
    "vbscript:msgbox(1)", "data:text/html;base64,PHNjcmlwdD5hbGVydCgxKTwvc2NyaXB0Pg==",
    "data:image/png;base64,iVBORw0KGgo=", "http://example.com/", "https://example.com/?a=1&b=2",
    "//evil.example/", "/relative", "#frag", "mailto:a@b.c", "http://[::1", "http://x:99999/",
    "%zz", "\x01http://x/",
]

STYLES = [
    "color: red", "expression(alert(1))", "background: url(javascript:alert(1))",
    "behavior: url(x.htc)", "-moz-binding: url(x)", "width: 10px; height: 5px",
    "color: \\72\\65\\64", "font-family: 'a;b'",
]

SPECIAL_CHARS = [
    "\x00", "\x01", "\x0b", "\x0c", "\x7f", "\r", "\r\n",
    "\ufffd", "\u00a0", "\u2028", "\u200b", "\ufeff",
]

ENTITIES = [
    "&amp;", "&lt;", "&gt;", "&quot;", "&apos;", "&nbsp;",
    "&", "&amp", "&ampamp;", "&#", "&#x", "&#x1f;", "&#xdeadbeef;", "&#99999999;",
    "&#0;", "&#128;", "&#xD800;", "&#x110000;", "&notin;", "&notit;", "&lt",
]

# Output checks for the ugc policy
_TAG = re.compile(r"<[a-zA-Z][^>]*>")
_DANGEROUS_ELEMENT = re.compile(r"<(script|style|iframe|object|embed|frame|frameset|base|meta|form)\b", re.I)
_EVENT_HANDLER = re.compile(r"\son[a-z]+=", re.I)
_SCRIPT_URL = re.compile(r'="\s*(javascript|vbscript|data:text)', re.I)


def random_string(min_len=0, max_len=20):
    """Generate random ASCII string."""
    length = random.randint(min_len, max_len)
    return "".join(random.choices(string.ascii_letters + string.digits, k=length))


def fuzz_text():
    parts = []
    for _ in range(random.randint(1, 5)):
        choice = random.random()
        if choice < 0.4:
            parts.append(random_string(1, 12))
        elif choice < 0.6:
            parts.append(random.choice(ENTITIES))
        elif choice < 0.8:
            parts.append(random.choice(SPECIAL_CHARS))
        else:
            parts.append(random.choice(["<", ">", "&", '"', "'", " < ", "<<", "</", "<!"]))
    return "".join(parts)


def fuzz_attribute_value(name):
    if name in ("href", "src", "cite", "formaction"):
        return random.choice(URLS)
    if name == "style":
        return random.choice(STYLES)
    if random.random() < 0.3:
        return fuzz_text()
    return random_string(0, 10)


def fuzz_attribute():
    name = random.choice(ATTRIBUTES)
    if random.random() < 0.1:
        name = name.upper()
    value = fuzz_attribute_value(name).replace('"', "&quot;")
    quoting = random.random()
    if quoting < 0.6:
        return f'{name}="{value}"'
    if quoting < 0.8:
        return f"{name}='{value}'"
    if quoting < 0.9:
        return f"{name}={random_string(1, 8)}"
    return name


def fuzz_open_tag():
    tag = random.choice(TAGS)
    if random.random() < 0.2:
        tag = tag.upper()
    attrs = " ".join(fuzz_attribute() for _ in range(random.randint(0, 4)))
    ending = random.choice([">", ">", ">", "/>", " />", ""])
    return f"<{tag} {attrs}{ending}" if attrs else f"<{tag}{ending}"


def fuzz_close_tag():
    tag = random.choice(TAGS)
    return random.choice([f"</{tag}>", f"</{tag} >", f"</{tag.upper()}>", f"</{tag} x=1>", "</>", "</ >"])


def fuzz_comment():
    body = fuzz_text()
    return random.choice([
        f"<!--{body}-->",
        f"<!-- {body} --!>",
        "<!-->",
        "<!--->",
        f"<!--{body}",
        f"<!--[if IE]>{body}<![endif]-->",
        f"<?{body}?>",
        f"<![CDATA[{body}]]>",
    ])


def fuzz_doctype():
    return random.choice(["<!DOCTYPE html>", "<!doctype html>", "<!DOCTYPE>", "<!DOCTYPE html", "<!DOCTYPEhtml>"])


def fuzz_raw_text():
    tag = random.choice(["script", "style", "xmp", "iframe", "noscript", "title", "textarea"])
    body = random.choice([
        "alert(1)",
        "</scr" + "ipt>",
        f"</{tag}",
        f"<{tag}>nested</{tag}>",
        "<!--<script>-->",
        fuzz_text(),
    ])
    close = random.choice([f"</{tag}>", f"</{tag.upper()} >", ""])
    return f"<{tag}>{body}{close}"


def fuzz_xss_vector():
    return random.choice([
        "<script>alert(1)</script>",
        "<img src=x onerror=alert(1)>",
        "<IMG SRC=JaVaScRiPt:alert('XSS')>",
        "<<SCRIPT>alert(\"XSS\");//<</SCRIPT>",
        '<a href="javascript:alert(1)">x</a>',
        '<svg onload=alert(1)>',
        '<iframe src="javascript:alert(1)"></iframe>',
        '<BODY ONLOAD=alert(1)>',
        '<div style="background:url(javascript:alert(1))">x</div>',
        '<a href="&#x6A;avascript:alert(1)">x</a>',
        '<meta http-equiv="refresh" content="0;url=javascript:alert(1)">',
        '<object data="javascript:alert(1)"></object>',
        "<plaintext><script>alert(1)</script>",
    ])


def fuzz_nested_structure(depth=0, max_depth=8):
    if depth >= max_depth or random.random() < 0.3:
        return fuzz_text()
    tag = random.choice(TAGS)
    inner = "".join(fuzz_nested_structure(depth + 1, max_depth) for _ in range(random.randint(1, 3)))
    if random.random() < 0.2:
        return f"<{tag}>{inner}"
    return f"<{tag}>{inner}</{tag}>"


def generate_fuzzed_html():
    """Generate a fuzzed HTML fragment."""
    parts = []
    if random.random() < 0.2:
        parts.append(fuzz_doctype())
    for _ in range(random.randint(1, 20)):
        generator = random.choices(
            [
                fuzz_open_tag,
                fuzz_close_tag,
                fuzz_comment,
                fuzz_text,
                fuzz_raw_text,
                fuzz_xss_vector,
                fuzz_nested_structure,
            ],
            weights=[20, 10, 5, 15, 6, 8, 8],
        )[0]
        parts.append(generator())
    return "".join(parts)


def check_output(output, policy, policy_name):
    """Return a list of problems with one sanitized output."""
    problems = []
    again = policy.sanitize(output)
    if again != output:
        problems.append(f"not stable: {output[:120]!r} -> {again[:120]!r}")
    if policy_name != "ugc":
        if _TAG.search(output):
            problems.append("markup left by a stripping policy")
        return problems
    if _DANGEROUS_ELEMENT.search(output):
        problems.append("dangerous element in output")
    for tag in _TAG.findall(output):
        if _EVENT_HANDLER.search(tag):
            problems.append(f"event handler in {tag[:80]!r}")
        if _SCRIPT_URL.search(tag):
            problems.append(f"script URL in {tag[:80]!r}")
    return problems


def run_fuzzer(policy_name, num_tests, seed=None, verbose=False, save_failures=False):
    """Run the fuzzer against one policy."""
    if seed is not None:
        random.seed(seed)

    policy = POLICIES[policy_name]()
    crashes = []
    hangs = []
    unsafe = []
    successes = 0

    print(f"Fuzzing the {policy_name} policy with {num_tests} test cases...")
    start_time = time.time()

    for i in range(num_tests):
        html = generate_fuzzed_html()

        if verbose and i % 100 == 0:
            print(f"  Test {i}/{num_tests}...")

        try:
            start = time.perf_counter()
            output = policy.sanitize(html)
            elapsed = time.perf_counter() - start
        except SanitizeError as e:
            crashes.append({"test_num": i, "html": html, "error": str(e), "traceback": traceback.format_exc()})
            if verbose:
                print(f"  ERROR: Test {i}: {e}")
            continue
        except Exception as e:
            crashes.append({"test_num": i, "html": html, "error": repr(e), "traceback": traceback.format_exc()})
            if verbose:
                print(f"  CRASH: Test {i}: {e!r}")
            continue

        if elapsed > 1.0:
            hangs.append({"test_num": i, "html": html, "time": elapsed})
            if verbose:
                print(f"  HANG: Test {i} took {elapsed:.2f}s")
            continue

        problems = check_output(output, policy, policy_name)
        if problems:
            unsafe.append({"test_num": i, "html": html, "output": output, "problems": problems})
            if verbose:
                print(f"  UNSAFE: Test {i}: {problems[0]}")
            continue
        successes += 1

    elapsed_total = time.time() - start_time

    print(f"\n{'=' * 60}")
    print(f"FUZZING RESULTS: {policy_name}")
    print(f"{'=' * 60}")
    print(f"Total tests:    {num_tests}")
    print(f"Successes:      {successes}")
    print(f"Crashes:        {len(crashes)}")
    print(f"Hangs (>1s):    {len(hangs)}")
    print(f"Unsafe output:  {len(unsafe)}")
    print(f"Total time:     {elapsed_total:.2f}s")
    print(f"Tests/second:   {num_tests / elapsed_total:.1f}")

    for crash in crashes[:10]:
        print(f"\nCrash in test #{crash['test_num']}:")
        print(f"  HTML: {crash['html'][:200]!r}")
        print(f"  Error: {crash['error']}")
    for hang in hangs[:5]:
        print(f"\nHang in test #{hang['test_num']} ({hang['time']:.2f}s):")
        print(f"  HTML: {hang['html'][:200]!r}")
    for case in unsafe[:10]:
        print(f"\nUnsafe output in test #{case['test_num']}:")
        print(f"  HTML:   {case['html'][:200]!r}")
        print(f"  Output: {case['output'][:200]!r}")
        for problem in case["problems"]:
            print(f"  - {problem}")

    if save_failures and (crashes or hangs or unsafe):
        filename = f"fuzz_failures_{policy_name}_{int(time.time())}.txt"
        with open(filename, "w", encoding="utf-8") as f:
            f.write(f"Fuzzing results for the {policy_name} policy\n")
            f.write(f"Seed: {seed}\n\n")
            for crash in crashes:
                f.write(f"=== CRASH #{crash['test_num']} ===\n")
                f.write(f"HTML:\n{crash['html']}\n")
                f.write(f"Traceback:\n{crash['traceback']}\n\n")
            for hang in hangs:
                f.write(f"=== HANG #{hang['test_num']} ({hang['time']:.2f}s) ===\n")
                f.write(f"HTML:\n{hang['html']}\n\n")
            for case in unsafe:
                f.write(f"=== UNSAFE #{case['test_num']} ===\n")
                f.write(f"HTML:\n{case['html']}\nOutput:\n{case['output']}\n")
                f.write("".join(f"- {problem}\n" for problem in case["problems"]) + "\n")
        print(f"\nFailures saved to {filename}")

    return not (crashes or hangs or unsafe)


def main():
    parser = argparse.ArgumentParser(description="Fuzz the sanitizer with hostile input")
    parser.add_argument(
        "--policy", "-p",
        choices=sorted(POLICIES),
        default="ugc",
        help="Policy to fuzz (default: ugc)",
    )
    parser.add_argument(
        "--num-tests", "-n",
        type=int,
        default=1000,
        help="Number of test cases to generate (default: 1000)",
    )
    parser.add_argument(
        "--seed", "-s",
        type=int,
        default=None,
        help="Random seed for reproducibility",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )
    parser.add_argument(
        "--save-failures",
        action="store_true",
        help="Save failures to a file",
    )
    parser.add_argument(
        "--sample",
        type=int,
        metavar="N",
        help="Just print N sample fuzzed fragments (no sanitizing)",
    )

    args = parser.parse_args()

    if args.sample:
        if args.seed:
            random.seed(args.seed)
        for i in range(args.sample):
            print(f"=== Sample {i + 1} ===")
            print(generate_fuzzed_html())
            print()
        return

    success = run_fuzzer(
        args.policy,
        args.num_tests,
        seed=args.seed,
        verbose=args.verbose,
        save_failures=args.save_failures,
    )

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
