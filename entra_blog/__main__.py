"""
Entra Identity Blog Toolchain — Command line entry point

Usage:
    python -m entra_blog posts check                       # validate every post
    python -m entra_blog posts list --tag pim
    python -m entra_blog posts new "Activating PIM roles" --author "J. Doe" --tag pim
    python -m entra_blog posts snippets _posts/2024-03-18-activate-pim.md --language powershell
    python -m entra_blog posts index --output tags.md

Automations (the scripts the posts walk through):
    python -m entra_blog pim activate --role "User Administrator" --duration 2 --justification "..."
    python -m entra_blog pim list
    python -m entra_blog group add-member "SG-Helpdesk" --user alice@contoso.com --create
    python -m entra_blog rbac assign --subscription-id <GUID> --role Reader --principal alice@contoso.com
    python -m entra_blog --what-if rbac assign ...          # plan writes, send none

Profile management:
    python -m entra_blog profile add <name> --tenant-id ... --client-id ...
    python -m entra_blog profile list
    python -m entra_blog profile remove <name>
    python -m entra_blog profile set-default <name>

Automations stop on the first error and exit with status 1.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import Callable, Optional

import httpx

from . import __version__
from .config import (
    ARM_SCOPES,
    GRAPH_SCOPES,
    PIM_MAX_DURATION_HOURS,
    PIM_MIN_DURATION_HOURS,
    PIM_ROLE_CHOICES,
    RBAC_PRINCIPAL_TYPES,
    BlogConfig,
    CertificateAuth,
    DelegatedAuth,
)
from .auth.authenticator import Authenticator, AuthenticationError
from .graph.client import ArmClient, GraphClient, GraphAPIError
from .safety.guardian import SafetyViolation, WriteGuardian
from .automations import (
    ALL_AUTOMATIONS,
    AutomationError,
    AutomationResult,
    GroupMembership,
    PimActivation,
    RoleAssignment,
    list_pim_roles,
)
from .posts import (
    PostError,
    check_posts,
    extract_snippets,
    load_post,
    load_posts,
    render_tag_index,
    tag_index,
    write_new_post,
)
from .posts.library import find_post_files
from .profiles import AUTH_MODES, ProfileStore, TenantProfile, resolve_profile
from .reporting import export_json

logger = logging.getLogger("entra_blog.cli")

SNIPPET_EXTENSIONS = {
    "powershell": ".ps1",
    "python": ".py",
    "bash": ".sh",
    "azurecli": ".azcli",
    "json": ".json",
    "yaml": ".yml",
}


# ---------------------------------------------------------------------------
# Argument types
# ---------------------------------------------------------------------------

def duration_hours(value: str) -> int:
    """argparse type: whole hours within the PIM activation range."""
    try:
        hours = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid duration: {value!r}")
    if not PIM_MIN_DURATION_HOURS <= hours <= PIM_MAX_DURATION_HOURS:
        raise argparse.ArgumentTypeError(
            f"duration must be between {PIM_MIN_DURATION_HOURS} and "
            f"{PIM_MAX_DURATION_HOURS} hours"
        )
    return hours


def iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value!r}")


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="entra_blog",
        description="Entra identity blog: post tooling and identity automation examples",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", "-c", type=Path, help="Path to JSON configuration file")
    parser.add_argument("--profile", "-p", default=None,
                        help="Tenant profile name to use (run 'profile list' to see available)")
    parser.add_argument("--tenant-id", default=None, help="Tenant ID (overrides profile)")
    parser.add_argument("--client-id", default=None, help="Client ID (overrides profile)")
    parser.add_argument("--cert-path", type=Path, default=None,
                        help="Path to base64-encoded certificate file (overrides profile)")
    parser.add_argument("--delegated", action="store_true",
                        help="Use delegated (device-code) authentication instead of certificate")
    parser.add_argument("--what-if", action="store_true",
                        help="Run lookups but only plan writes; nothing is changed")
    parser.add_argument("--report", type=Path, default=None,
                        help="Write a JSON record of the automation run to this path")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # --- posts ---
    posts_p = subparsers.add_parser("posts", help="Work with blog posts")
    posts_sub = posts_p.add_subparsers(dest="posts_action", help="Post actions")

    def add_dir(p):
        p.add_argument("--dir", "-d", type=Path, default=None,
                       help="Posts directory (default: from config, else ./_posts)")

    check_p = posts_sub.add_parser("check", help="Validate front matter and body of every post")
    add_dir(check_p)

    list_p = posts_sub.add_parser("list", help="List posts")
    add_dir(list_p)
    list_p.add_argument("--tag", "-t", default=None, help="Only posts with this tag")
    list_p.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    tags_p = posts_sub.add_parser("tags", help="Show tag counts")
    add_dir(tags_p)

    snip_p = posts_sub.add_parser("snippets", help="Print or save the code blocks of a post")
    snip_p.add_argument("post", type=Path, help="Post file")
    snip_p.add_argument("--language", "-l", default=None, help="Only this language (e.g. powershell)")
    snip_p.add_argument("--output-dir", "-o", type=Path, default=None,
                        help="Write each snippet to a file in this directory")

    new_p = posts_sub.add_parser("new", help="Scaffold a new post")
    add_dir(new_p)
    new_p.add_argument("title", help="Post title")
    new_p.add_argument("--author", "-a", default=None, help="Author (default: from config)")
    new_p.add_argument("--tag", "-t", action="append", default=None, help="Tag (repeatable)")
    new_p.add_argument("--date", type=iso_date, default=None, help="Post date (YYYY-MM-DD)")

    index_p = posts_sub.add_parser("index", help="Render the tag index page")
    add_dir(index_p)
    index_p.add_argument("--output", "-o", type=Path, default=Path("tags.md"),
                         help="Output file (default: ./tags.md)")
    index_p.add_argument("--title", default="Tags", help="Page title")

    # --- pim ---
    pim_p = subparsers.add_parser("pim", help="Privileged Identity Management")
    pim_sub = pim_p.add_subparsers(dest="pim_action", help="PIM actions")
    act_p = pim_sub.add_parser("activate", help="Self-activate eligible directory roles")
    act_p.add_argument("--role", "-r", dest="roles", action="extend", nargs="+", required=True,
                       choices=PIM_ROLE_CHOICES, metavar="ROLE",
                       help=f"Role name(s); one of: {', '.join(PIM_ROLE_CHOICES)}")
    act_p.add_argument("--duration", type=duration_hours, default=None,
                       help=f"Hours ({PIM_MIN_DURATION_HOURS}-{PIM_MAX_DURATION_HOURS})")
    act_p.add_argument("--justification", "-j", required=True, help="Reason for activation")
    act_p.add_argument("--ticket", default=None, help="Change/incident ticket number")
    act_p.add_argument("--ticket-system", default="", help="Ticket system name")
    pim_sub.add_parser("list", help="List eligible and active roles of the signed-in user")

    # --- group ---
    group_p = subparsers.add_parser("group", help="Security group membership")
    group_sub = group_p.add_subparsers(dest="group_action", help="Group actions")
    gm_p = group_sub.add_parser("add-member", help="Ensure users are members of a group")
    gm_p.add_argument("group_name", help="Group display name")
    gm_p.add_argument("--user", "-u", dest="users", action="extend", nargs="+", required=True,
                      help="User principal name(s)")
    gm_p.add_argument("--create", action="store_true", help="Create the group if missing")
    gm_p.add_argument("--description", default="", help="Description for a created group")

    # --- rbac ---
    rbac_p = subparsers.add_parser("rbac", help="Azure RBAC role assignments")
    rbac_sub = rbac_p.add_subparsers(dest="rbac_action", help="RBAC actions")
    ra_p = rbac_sub.add_parser("assign", help="Assign an Azure role at a scope")
    ra_p.add_argument("--subscription-id", "-s", default=None,
                      help="Subscription ID (default: from profile)")
    ra_p.add_argument("--resource-group", "-g", default=None, help="Resource group (optional)")
    ra_p.add_argument("--role", required=True, help="Azure role name, e.g. Reader")
    ra_p.add_argument("--principal", required=True, help="UPN or display name")
    ra_p.add_argument("--principal-type", choices=RBAC_PRINCIPAL_TYPES, default="User")

    # --- permissions ---
    perm_p = subparsers.add_parser("permissions", help="Show the permissions each automation needs")
    perm_p.add_argument("automation", nargs="?", default=None,
                        choices=[cls.name for cls in ALL_AUTOMATIONS])

    # --- profile ---
    prof_p = subparsers.add_parser("profile", help="Manage tenant profiles")
    prof_sub = prof_p.add_subparsers(dest="profile_action", help="Profile actions")
    add_p = prof_sub.add_parser("add", help="Add or update a tenant profile")
    add_p.add_argument("profile_name", help="Short name for the profile (e.g. 'lab')")
    add_p.add_argument("--tenant-id", required=True, help="Entra tenant ID (GUID or verified domain)")
    add_p.add_argument("--client-id", required=True, help="App registration client ID (GUID)")
    add_p.add_argument("--cert-path", default="./base64.txt",
                       help="Path to base64-encoded PFX (default: ./base64.txt)")
    add_p.add_argument("--display-name", help="Friendly tenant display name")
    add_p.add_argument("--subscription-id", help="Default subscription for rbac commands")
    add_p.add_argument("--resource-group", help="Default resource group for rbac commands")
    add_p.add_argument("--auth-mode", choices=AUTH_MODES, default="certificate",
                       help="How automations sign in to this tenant (default: certificate)")
    add_p.add_argument("--notes", help="Optional notes")
    add_p.add_argument("--set-default", action="store_true", help="Set as default profile")
    prof_sub.add_parser("list", help="List all configured profiles")
    rm_p = prof_sub.add_parser("remove", help="Remove a profile")
    rm_p.add_argument("profile_name", help="Name of the profile to remove")
    sd_p = prof_sub.add_parser("set-default", help="Set the default profile")
    sd_p.add_argument("profile_name", help="Name of the profile to set as default")

    return parser


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def load_config(args: argparse.Namespace) -> BlogConfig:
    if args.config:
        if not args.config.exists():
            print(f"\n❌ Config file not found: {args.config}")
            sys.exit(1)
        return BlogConfig.from_file(args.config)
    return BlogConfig()


def _selected_profile(args: argparse.Namespace) -> Optional[TenantProfile]:
    if args.profile:
        profile = resolve_profile(args.profile)
        if not profile:
            print(f"\n❌ Profile '{args.profile}' not found. Use 'profile list' to see available profiles.")
            sys.exit(1)
        return profile
    if not args.config and not args.tenant_id:
        return resolve_profile()
    return None


def build_auth(args: argparse.Namespace, config: BlogConfig, delegated: bool = False) -> Optional[TenantProfile]:
    """Fill config.auth from profile, CLI flags or config file. Returns the profile used."""
    if args.delegated or delegated:
        config.auth.mode = "delegated"

    profile = _selected_profile(args)
    if profile and profile.auth_mode == "delegated":
        config.auth.mode = "delegated"
    if profile:
        tenant_id = args.tenant_id or profile.tenant_id
        client_id = args.client_id or profile.client_id
        cert_path = str(args.cert_path) if args.cert_path else profile.resolve_cert_path()
    elif args.tenant_id and args.client_id:
        tenant_id = args.tenant_id
        client_id = args.client_id
        cert_path = str(args.cert_path) if args.cert_path else "./base64.txt"
    elif config.auth.certificate:
        tenant_id = config.auth.certificate.tenant_id
        client_id = config.auth.certificate.client_id
        cert_path = str(args.cert_path) if args.cert_path else config.auth.certificate.certificate_path
    elif config.auth.delegated:
        tenant_id = config.auth.delegated.tenant_id
        client_id = config.auth.delegated.client_id
        cert_path = ""
    else:
        print("\n❌ No tenant credentials found. Use one of:")
        print("   • --profile <name>             (from saved profiles)")
        print("   • --tenant-id X --client-id Y  (ad-hoc)")
        print("   • --config config.json         (JSON config file)")
        sys.exit(1)

    if config.auth.mode == "delegated":
        config.auth.delegated = DelegatedAuth(tenant_id=tenant_id, client_id=client_id)
    else:
        password = config.auth.certificate.certificate_password if config.auth.certificate else ""
        config.auth.certificate = CertificateAuth(
            tenant_id=tenant_id,
            client_id=client_id,
            certificate_path=cert_path,
            certificate_password=password,
        )
    return profile


def _posts_dir(args: argparse.Namespace, config: BlogConfig) -> Path:
    return args.dir if args.dir else config.posts.path


# ---------------------------------------------------------------------------
# posts
# ---------------------------------------------------------------------------

def _cmd_posts(args: argparse.Namespace, config: BlogConfig) -> int:
    action = args.posts_action
    if action == "check":
        return _posts_check(_posts_dir(args, config))
    elif action == "list":
        return _posts_list(_posts_dir(args, config), args.tag, args.json)
    elif action == "tags":
        return _posts_tags(_posts_dir(args, config))
    elif action == "snippets":
        return _posts_snippets(args.post, args.language, args.output_dir)
    elif action == "new":
        return _posts_new(args, config)
    elif action == "index":
        return _posts_index(_posts_dir(args, config), args.output, args.title)
    print("Usage: python -m entra_blog posts {check|list|tags|snippets|new|index}")
    return 0


def _posts_check(directory: Path) -> int:
    total = len(find_post_files(directory))
    issues = check_posts(directory)
    for issue in issues:
        print(f"  ❌ {issue}")
    if issues:
        print(f"\n  {len(issues)} of {total} posts are invalid.")
        return 1
    print(f"  ✅ {total} posts valid.")
    return 0


def _posts_list(directory: Path, tag: Optional[str], as_json: bool) -> int:
    posts = load_posts(directory)
    if tag:
        posts = [p for p in posts if tag.lower() in {t.lower() for t in p.tags}]
    if as_json:
        print(json.dumps([p.to_dict() for p in posts], indent=2))
        return 0
    if not posts:
        print("No posts found.")
        return 0
    print(f"\n  {'Date':<10s}  {'Title':<50s}  {'Tags'}")
    print(f"  {'─'*10}  {'─'*50}  {'─'*20}")
    for p in posts:
        posted = p.date.isoformat() if p.date else "-"
        print(f"  {posted:<10s}  {p.title[:50]:<50s}  {', '.join(p.sorted_tags)}")
    print()
    return 0


def _posts_tags(directory: Path) -> int:
    index = tag_index(load_posts(directory))
    if not index:
        print("No tags found.")
        return 0
    for tag, posts in index.items():
        print(f"  {tag:<30s} {len(posts)}")
    return 0


def _posts_snippets(path: Path, language: Optional[str], output_dir: Optional[Path]) -> int:
    post = load_post(path)
    snippets = extract_snippets(post, language)
    if not snippets:
        print(f"No {language + ' ' if language else ''}snippets in {path}.")
        return 0
    for i, snippet in enumerate(snippets, 1):
        if output_dir:
            output_dir.mkdir(parents=True, exist_ok=True)
            ext = SNIPPET_EXTENSIONS.get(snippet.language, ".txt")
            target = output_dir / f"{post.slug or path.stem}-{i}{ext}"
            target.write_text(snippet.code, encoding="utf-8")
            print(f"  📄 {target}")
        else:
            print(f"# --- snippet {i} ({snippet.language or 'text'}, line {snippet.line}) ---")
            print(snippet.code, end="")
    return 0


def _posts_new(args: argparse.Namespace, config: BlogConfig) -> int:
    author = args.author or config.posts.default_author
    if not author:
        print("❌ No author given. Use --author or set posts.default_author in the config.")
        return 1
    tags = args.tag if args.tag is not None else config.posts.default_tags
    path = write_new_post(_posts_dir(args, config), args.title, author, tags, post_date=args.date)
    print(f"  ✅ Created {path}")
    return 0


def _posts_index(directory: Path, output: Path, title: str) -> int:
    content = render_tag_index(load_posts(directory), title=title, posts_dir=directory)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(content, encoding="utf-8")
    print(f"  📝 Tag index: {output}")
    return 0


# ---------------------------------------------------------------------------
# Automations
# ---------------------------------------------------------------------------

def _print_result(result: AutomationResult) -> None:
    for step in result.steps:
        print(f"  • {step}")
    if result.status == "failed":
        print(f"\n  ❌ {result.automation_name}: FAILED — {result.error}")
    elif result.status == "skipped":
        print(f"\n  ⏭  {result.automation_name}: nothing to do")
    else:
        verb = "planned" if result.what_if else "applied"
        print(f"\n  ✅ {result.automation_name}: {len(result.changes)} change(s) {verb} "
              f"({result.metadata.get('duration_seconds', '?')}s)")


def run_automation(
    args: argparse.Namespace,
    config: BlogConfig,
    factory: Callable[[GraphClient, Optional[ArmClient], WriteGuardian], object],
    needs_arm: bool = False,
    delegated: bool = False,
    parameters: Optional[dict] = None,
) -> int:
    """Authenticate, open clients, build the automation and execute it once."""
    build_auth(args, config, delegated=delegated)
    what_if = args.what_if or config.automation.what_if
    guardian = WriteGuardian(what_if=what_if)
    guardian.print_banner()

    print("\n🔐 Authenticating...")
    authenticator = Authenticator(config.auth)
    graph_token = authenticator.acquire_token(GRAPH_SCOPES)
    arm_token = authenticator.acquire_token(ARM_SCOPES) if needs_arm else None
    print("✅ Authentication successful.\n")

    with GraphClient(graph_token, guardian) as graph:
        if arm_token:
            with ArmClient(arm_token, guardian) as arm:
                result = factory(graph, arm, guardian).execute()
                result.metadata["arm_requests"] = arm.get_stats()["total_requests"]
        else:
            result = factory(graph, None, guardian).execute()
        result.metadata["graph_requests"] = graph.get_stats()["total_requests"]

    _print_result(result)

    report = args.report or (Path(config.automation.report_path) if config.automation.report_path else None)
    if report:
        path = export_json(result, report, guardian=guardian, parameters=parameters)
        print(f"  📄 Report: {path}")
    return result.exit_code


def _cmd_pim(args: argparse.Namespace, config: BlogConfig) -> int:
    if args.pim_action == "activate":
        duration = args.duration or config.automation.default_duration_hours
        return run_automation(
            args, config,
            lambda graph, arm, guardian: PimActivation(
                graph, guardian,
                roles=args.roles,
                duration_hours=duration,
                justification=args.justification,
                ticket_number=args.ticket,
                ticket_system=args.ticket_system,
            ),
            delegated=True,
            parameters={"roles": args.roles, "duration_hours": duration,
                        "justification": args.justification},
        )
    elif args.pim_action == "list":
        build_auth(args, config, delegated=True)
        token = Authenticator(config.auth).acquire_token(GRAPH_SCOPES)
        with GraphClient(token, WriteGuardian()) as graph:
            summary = list_pim_roles(graph)
        for label, entries in summary.items():
            print(f"\n  {label.capitalize()} roles:")
            if not entries:
                print("    (none)")
            for e in entries:
                until = e.get("endDateTime") or "permanent"
                print(f"    {e['role']:<40s} until {until}")
        print()
        return 0
    print("Usage: python -m entra_blog pim {activate|list}")
    return 0


def _cmd_group(args: argparse.Namespace, config: BlogConfig) -> int:
    if args.group_action == "add-member":
        return run_automation(
            args, config,
            lambda graph, arm, guardian: GroupMembership(
                graph, guardian,
                group_name=args.group_name,
                user_principal_names=args.users,
                create_group=args.create,
                description=args.description,
            ),
            parameters={"group": args.group_name, "users": args.users, "create": args.create},
        )
    print("Usage: python -m entra_blog group add-member <group> --user <upn> [...]")
    return 0


def _cmd_rbac(args: argparse.Namespace, config: BlogConfig) -> int:
    if args.rbac_action == "assign":
        subscription_id = args.subscription_id
        resource_group = args.resource_group
        if not subscription_id:
            profile = _selected_profile(args)
            if not profile or not profile.default_scope:
                print("❌ No subscription given. Use --subscription-id or set one on the profile.")
                return 1
            subscription_id = profile.subscription_id
            if resource_group is None:
                resource_group = profile.resource_group or None
            print(f"  Using scope from profile '{profile.name}': {profile.default_scope}")
        return run_automation(
            args, config,
            lambda graph, arm, guardian: RoleAssignment(
                graph, arm, guardian,
                subscription_id=subscription_id,
                role_name=args.role,
                principal_name=args.principal,
                principal_type=args.principal_type,
                resource_group=resource_group,
            ),
            needs_arm=True,
            parameters={"subscription_id": subscription_id, "resource_group": resource_group,
                        "role": args.role, "principal": args.principal,
                        "principal_type": args.principal_type},
        )
    print("Usage: python -m entra_blog rbac assign --role <name> --principal <name>")
    return 0


def _cmd_permissions(args: argparse.Namespace) -> int:
    for cls in ALL_AUTOMATIONS:
        if args.automation and cls.name != args.automation:
            continue
        print(f"\n  {cls.name}: {cls.description}")
        for perm, why in Authenticator.list_required_permissions(cls.name).items():
            print(f"    {perm:<45s} {why}")
    print()
    return 0


# ---------------------------------------------------------------------------
# Profile management sub-commands
# ---------------------------------------------------------------------------

def _cmd_profile(args: argparse.Namespace) -> int:
    """Handle `profile add|list|remove|set-default` sub-commands."""
    action = args.profile_action
    if action == "list":
        return _profile_list()
    elif action == "add":
        return _profile_add(args)
    elif action == "remove":
        return _profile_remove(args)
    elif action == "set-default":
        return _profile_set_default(args)
    print("Usage: python -m entra_blog profile {add|list|remove|set-default}")
    return 0


def _profile_list() -> int:
    store = ProfileStore.load()
    profiles = store.list_profiles()
    if not profiles:
        print("No profiles configured. Add one with:\n")
        print("  python -m entra_blog profile add <name> \\")
        print("    --tenant-id <GUID> --client-id <GUID> --cert-path ./base64.txt")
        return 0

    print(f"\n  {'Name':<20s} {'Tenant ID':<38s} {'Mode':<11s} {'Default scope':<52s} {'Default'}")
    print(f"  {'─'*20} {'─'*38} {'─'*11} {'─'*52} {'─'*7}")
    for p in profiles:
        default_marker = "  ✓" if p.name == store.default_profile else ""
        display = p.tenant_display_name or ""
        name_col = f"{p.name}" + (f" ({display})" if display else "")
        scope = p.default_scope or "-"
        print(f"  {name_col:<20s} {p.tenant_id:<38s} {p.auth_mode:<11s} {scope:<52s}{default_marker}")
    print()
    return 0


def _profile_add(args: argparse.Namespace) -> int:
    store = ProfileStore.load()
    name = args.profile_name
    if store.get(name):
        print(f"  Profile '{name}' already exists. It will be overwritten.")

    profile = TenantProfile(
        name=name,
        tenant_id=args.tenant_id,
        client_id=args.client_id,
        cert_path=args.cert_path or "./base64.txt",
        tenant_display_name=args.display_name or "",
        auth_mode=args.auth_mode,
        subscription_id=args.subscription_id or "",
        resource_group=args.resource_group or "",
        notes=args.notes or "",
    )
    set_as_default = args.set_default or not store.profiles
    store.add(profile, set_default=set_as_default)
    print(f"  ✅ Profile '{name}' saved.")
    if set_as_default:
        print("  ✅ Set as default profile.")
    return 0


def _profile_remove(args: argparse.Namespace) -> int:
    store = ProfileStore.load()
    if store.remove(args.profile_name):
        print(f"  ✅ Profile '{args.profile_name}' removed.")
        return 0
    print(f"  ❌ Profile '{args.profile_name}' not found.")
    return 1


def _profile_set_default(args: argparse.Namespace) -> int:
    store = ProfileStore.load()
    if store.set_default(args.profile_name):
        print(f"  ✅ Default profile set to '{args.profile_name}'.")
        return 0
    print(f"  ❌ Profile '{args.profile_name}' not found.")
    return 1


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def run_cli(argv: Optional[list[str]] = None) -> int:
    """Parse arguments, dispatch, and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args)
        configure_logging(args.verbose or config.verbose)

        if not args.command:
            parser.print_help()
            return 0

        if args.command == "posts":
            return _cmd_posts(args, config)
        elif args.command == "pim":
            return _cmd_pim(args, config)
        elif args.command == "group":
            return _cmd_group(args, config)
        elif args.command == "rbac":
            return _cmd_rbac(args, config)
        elif args.command == "permissions":
            return _cmd_permissions(args)
        elif args.command == "profile":
            return _cmd_profile(args)
    except PostError as e:
        print(f"\n❌ {e}")
        return 1
    except (AuthenticationError, AutomationError, GraphAPIError, SafetyViolation, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"\n❌ {type(e).__name__}: {e}")
        return 1
    except httpx.HTTPError as e:
        logger.debug("Request failed", exc_info=True)
        print(f"\n❌ Request failed: {e}")
        return 1
    except OSError as e:
        logger.debug("File access failed", exc_info=True)
        print(f"\n❌ {e}")
        return 1
    return 0


def main():
    """Entry point for `python -m entra_blog` and the `entra-blog` script."""
    sys.exit(run_cli())


if __name__ == "__main__":
    main()
