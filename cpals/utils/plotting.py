"""
plotting utilities for cp-als rank builds.
"""

import colorsys

import matplotlib.colors as mc
import matplotlib.pyplot as plt


def lighten_color(color, amount=0.5):
    """
    lightens the given color by multiplying (1-luminosity) by the given amount.
    input can be matplotlib color string, hex string, or rgb tuple.
    """
    c = mc.cnames.get(color, color) if isinstance(color, str) else color
    c = colorsys.rgb_to_hls(*mc.to_rgb(c))
    return colorsys.hls_to_rgb(c[0], 1 - amount * (1 - c[1]), c[2])


def plot_rank_history(
    histories,
    labels=None,
    title='cp-als rank build',
    log_scale=True,
    save_path=None
):
    """
    plot the error reached at every rank of one or more builds.

    args:
        histories: list of engine histories (lists of dicts with 'rank' and 'epsilon')
        labels: list of labels for legend
        title: plot title
        log_scale: whether to use log scale for y-axis
        save_path: if provided, save figure to this path
    """
    colors = ['orange', 'blue', 'red', 'green', 'purple']
    markers = ['.', '>', '<', 's', 'd']

    fig = plt.figure(figsize=(10, 6))
    for i, history in enumerate(histories):
        entries = [h for h in history if h['epsilon'] >= 0]
        label = labels[i] if labels else f'build {i+1}'
        plt.plot(
            [h['rank'] for h in entries], [h['epsilon'] for h in entries],
            marker=markers[i % len(markers)],
            color=lighten_color(colors[i % len(colors)], 0.55),
            linewidth=2, label=label, markersize=8,
        )

    if log_scale:
        plt.yscale('log')
    plt.grid(linestyle='--', alpha=0.7)
    plt.legend(prop={'size': 12})
    plt.title(title)
    plt.xlabel('cp rank')
    plt.ylabel('error')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, bbox_inches='tight', dpi=150)
        print(f"[done] saved plot -> {save_path}")
        plt.close(fig)
    else:
        plt.show()
